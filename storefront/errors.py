"""Domain errors raised by the service layer.

Each error carries a stable ``code`` and the HTTP status the API layer
translates it to.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID


class ServiceError(Exception):
    """Base class for errors surfaced by the core."""

    code = "SERVICE_ERROR"
    status_code = 500
    title = "Internal error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(ServiceError):
    code = "NOT_FOUND"
    status_code = 404
    title = "Resource not found"


class AlreadyExistsError(ServiceError):
    code = "ALREADY_EXISTS"
    status_code = 409
    title = "Resource already exists"


class InvalidStateError(ServiceError):
    code = "INVALID_STATE"
    status_code = 409
    title = "Invalid state"


class InsufficientStockError(ServiceError):
    """Raised when an order line asks for more units than are in stock."""

    code = "INSUFFICIENT_STOCK"
    status_code = 422
    title = "Insufficient stock"

    def __init__(self, product_id: UUID, requested: int, available: Optional[int]) -> None:
        if available is None:
            detail = f"Insufficient stock for product {product_id}: requested {requested}"
        else:
            detail = f"Insufficient stock for product {product_id}: requested {requested}, available {available}"
        super().__init__(detail)
        self.product_id = product_id
        self.requested = requested
        self.available = available


class UnauthenticatedError(ServiceError):
    code = "UNAUTHENTICATED"
    status_code = 401
    title = "Authentication required"


class UnauthorizedTokenError(ServiceError):
    code = "UNAUTHORIZED_TOKEN"
    status_code = 401
    title = "Invalid token"


class ProviderUnconfiguredError(ServiceError):
    code = "PROVIDER_UNCONFIGURED"
    status_code = 503
    title = "OIDC provider not configured"

    def __init__(self, detail: str = "OIDC provider not configured") -> None:
        super().__init__(detail)


class ProviderError(ServiceError):
    code = "PROVIDER_ERROR"
    status_code = 502
    title = "OIDC provider error"


class StoreError(ServiceError):
    code = "STORE_ERROR"
    status_code = 500
    title = "Storage failure"
