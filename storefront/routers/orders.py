"""Order API endpoints."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status

from ..dependencies import get_order_service
from ..models import OrderStatus
from ..schemas import OrderCollection, OrderCreate, OrderRead, OrderStatusUpdate, OrderUpdate
from ..security import UserInfo, require_user_auth
from ..services import OrderService
from .common import (
    CONFLICT_RESPONSE,
    LIST_HEADERS,
    NOT_FOUND_RESPONSE,
    PROBLEM_CONTENT,
    UNAUTHORIZED_RESPONSE,
    paginated_response,
    resource_response,
)

router = APIRouter(
    prefix="/api/orders",
    tags=["Orders"],
    responses={401: UNAUTHORIZED_RESPONSE},
)


@router.get(
    "",
    response_model=OrderCollection,
    summary="List orders",
    operation_id="listOrders",
    responses={**LIST_HEADERS, 404: NOT_FOUND_RESPONSE},
)
def list_orders(
    request: Request,
    customer_id: Optional[UUID] = Query(default=None),
    status_filter: Optional[OrderStatus] = Query(default=None, alias="status"),
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    orders: OrderService = Depends(get_order_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    found = orders.list_orders(limit, offset, customer_id=customer_id, status=status_filter)
    total = orders.count_orders(customer_id=customer_id, status=status_filter)
    items = [OrderRead.model_validate(order) for order in found]
    return paginated_response(request, OrderCollection, items, total, limit=limit, offset=offset)


@router.post(
    "",
    response_model=OrderRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create order",
    operation_id="createOrder",
    responses={
        201: {"headers": {"Location": {"schema": {"type": "string", "format": "uri"}}}},
        404: NOT_FOUND_RESPONSE,
        409: CONFLICT_RESPONSE,
        422: {"description": "Invalid payload or insufficient stock.", "content": PROBLEM_CONTENT},
    },
)
def create_order(
    request: Request,
    payload: OrderCreate,
    orders: OrderService = Depends(get_order_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    order = orders.create_order(
        payload.customer_id,
        payload.items,
        shipping_address=payload.shipping_address,
        billing_address=payload.billing_address,
        notes=payload.notes,
    )
    return resource_response(
        OrderRead.model_validate(order),
        status_code=status.HTTP_201_CREATED,
        location=str(request.url_for("getOrder", order_id=order.id)),
    )


@router.get(
    "/by-number/{order_number}",
    response_model=OrderRead,
    summary="Retrieve order by number",
    operation_id="getOrderByNumber",
    responses={404: NOT_FOUND_RESPONSE},
)
def get_order_by_number(
    order_number: str,
    orders: OrderService = Depends(get_order_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    return resource_response(OrderRead.model_validate(orders.get_order_by_number(order_number)))


@router.get(
    "/{order_id}",
    response_model=OrderRead,
    summary="Retrieve order",
    operation_id="getOrder",
    name="getOrder",
    responses={404: NOT_FOUND_RESPONSE},
)
def get_order(
    order_id: UUID,
    orders: OrderService = Depends(get_order_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    return resource_response(OrderRead.model_validate(orders.get_order(order_id)))


@router.put(
    "/{order_id}",
    response_model=OrderRead,
    summary="Update order",
    operation_id="updateOrder",
    responses={404: NOT_FOUND_RESPONSE, 409: CONFLICT_RESPONSE},
)
def update_order(
    order_id: UUID,
    payload: OrderUpdate,
    orders: OrderService = Depends(get_order_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    return resource_response(OrderRead.model_validate(orders.update_order(order_id, payload)))


@router.patch(
    "/{order_id}/status",
    response_model=OrderRead,
    summary="Change order status",
    operation_id="updateOrderStatus",
    responses={404: NOT_FOUND_RESPONSE, 409: CONFLICT_RESPONSE},
)
def update_order_status(
    order_id: UUID,
    payload: OrderStatusUpdate,
    orders: OrderService = Depends(get_order_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    return resource_response(OrderRead.model_validate(orders.update_order_status(order_id, payload.status)))


@router.post(
    "/{order_id}/cancel",
    response_model=OrderRead,
    summary="Cancel order",
    operation_id="cancelOrder",
    responses={404: NOT_FOUND_RESPONSE, 409: CONFLICT_RESPONSE},
)
def cancel_order(
    order_id: UUID,
    orders: OrderService = Depends(get_order_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    return resource_response(OrderRead.model_validate(orders.cancel_order(order_id)))


@router.delete(
    "/{order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a cancelled order",
    operation_id="deleteOrder",
    responses={204: {"description": "Order deleted."}, 404: NOT_FOUND_RESPONSE, 409: CONFLICT_RESPONSE},
)
def delete_order(
    order_id: UUID,
    orders: OrderService = Depends(get_order_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    orders.delete_order(order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
