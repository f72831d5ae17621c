"""Product API endpoints."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status

from ..dependencies import get_product_service
from ..schemas import ProductCollection, ProductCreate, ProductRead, ProductUpdate
from ..security import UserInfo, require_user_auth
from ..services import ProductService
from .common import (
    CONFLICT_RESPONSE,
    LIST_HEADERS,
    NOT_FOUND_RESPONSE,
    UNAUTHORIZED_RESPONSE,
    paginated_response,
    resource_response,
)

router = APIRouter(prefix="/api/products", tags=["Products"])


@router.get(
    "",
    response_model=ProductCollection,
    summary="List products",
    operation_id="listProducts",
    responses={**LIST_HEADERS, 404: NOT_FOUND_RESPONSE},
)
def list_products(
    request: Request,
    category_id: Optional[UUID] = Query(default=None),
    active: bool = Query(default=False, description="Only return active products."),
    search: Optional[str] = Query(default=None, min_length=1, max_length=100),
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    products: ProductService = Depends(get_product_service),
) -> Response:
    found = products.list_products(limit, offset, category_id=category_id, active_only=active, search=search)
    total = products.count_products(category_id=category_id, active_only=active, search=search)
    items = [ProductRead.model_validate(product) for product in found]
    return paginated_response(request, ProductCollection, items, total, limit=limit, offset=offset)


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create product",
    operation_id="createProduct",
    responses={401: UNAUTHORIZED_RESPONSE, 404: NOT_FOUND_RESPONSE, 409: CONFLICT_RESPONSE},
)
def create_product(
    request: Request,
    payload: ProductCreate,
    products: ProductService = Depends(get_product_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    product = products.create_product(payload)
    return resource_response(
        ProductRead.model_validate(product),
        status_code=status.HTTP_201_CREATED,
        location=str(request.url_for("getProduct", product_id=product.id)),
    )


@router.get(
    "/{product_id}",
    response_model=ProductRead,
    summary="Retrieve product",
    operation_id="getProduct",
    name="getProduct",
    responses={404: NOT_FOUND_RESPONSE},
)
def get_product(product_id: UUID, products: ProductService = Depends(get_product_service)) -> Response:
    return resource_response(ProductRead.model_validate(products.get_product(product_id)))


@router.put(
    "/{product_id}",
    response_model=ProductRead,
    summary="Update product",
    operation_id="updateProduct",
    responses={401: UNAUTHORIZED_RESPONSE, 404: NOT_FOUND_RESPONSE, 409: CONFLICT_RESPONSE},
)
def update_product(
    product_id: UUID,
    payload: ProductUpdate,
    products: ProductService = Depends(get_product_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    return resource_response(ProductRead.model_validate(products.update_product(product_id, payload)))


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete product",
    operation_id="deleteProduct",
    responses={401: UNAUTHORIZED_RESPONSE, 404: NOT_FOUND_RESPONSE, 409: CONFLICT_RESPONSE},
)
def delete_product(
    product_id: UUID,
    products: ProductService = Depends(get_product_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    products.delete_product(product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
