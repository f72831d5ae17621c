"""Customer registration and self-service endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status

from ..dependencies import get_customer_service, get_order_service
from ..errors import NotFoundError
from ..models import Customer
from ..schemas import (
    CustomerCollection,
    CustomerCreate,
    CustomerOrderCreate,
    CustomerRead,
    CustomerUpdate,
    OrderCollection,
    OrderRead,
)
from ..security import CustomerInfo, UserInfo, require_customer_auth, require_user_auth
from ..services import CustomerService, OrderService
from .common import (
    CONFLICT_RESPONSE,
    LIST_HEADERS,
    NOT_FOUND_RESPONSE,
    PROBLEM_CONTENT,
    UNAUTHORIZED_RESPONSE,
    paginated_response,
    resource_response,
)

router = APIRouter(prefix="/api/customers", tags=["Customers"])
account_router = APIRouter(
    prefix="/api/customer",
    tags=["Customer account"],
    responses={401: UNAUTHORIZED_RESPONSE, 404: NOT_FOUND_RESPONSE},
)


def resolve_customer(principal: CustomerInfo, customers: CustomerService) -> Customer:
    """Load the customer record behind a token or ID-token principal."""

    if principal.customer_id is not None:
        return customers.get_customer(principal.customer_id)
    if not principal.email:
        raise NotFoundError("No customer is linked to this identity")
    return customers.get_customer_by_email(principal.email)


@router.post(
    "",
    response_model=CustomerRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a customer",
    operation_id="createCustomer",
    responses={409: CONFLICT_RESPONSE},
)
def create_customer(
    request: Request,
    payload: CustomerCreate,
    customers: CustomerService = Depends(get_customer_service),
) -> Response:
    customer = customers.create_customer(payload)
    return resource_response(
        CustomerRead.model_validate(customer),
        status_code=status.HTTP_201_CREATED,
        location=str(request.url_for("getCustomer", customer_id=customer.id)),
    )


@router.get(
    "",
    response_model=CustomerCollection,
    summary="List customers",
    operation_id="listCustomers",
    responses={**LIST_HEADERS, 401: UNAUTHORIZED_RESPONSE},
)
def list_customers(
    request: Request,
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    customers: CustomerService = Depends(get_customer_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    items = [CustomerRead.model_validate(customer) for customer in customers.list_customers(limit, offset)]
    return paginated_response(
        request, CustomerCollection, items, customers.count_customers(), limit=limit, offset=offset
    )


@router.get(
    "/{customer_id}",
    response_model=CustomerRead,
    summary="Retrieve customer",
    operation_id="getCustomer",
    name="getCustomer",
    responses={401: UNAUTHORIZED_RESPONSE, 404: NOT_FOUND_RESPONSE},
)
def get_customer(
    customer_id: UUID,
    customers: CustomerService = Depends(get_customer_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    return resource_response(CustomerRead.model_validate(customers.get_customer(customer_id)))


@account_router.get("/profile", response_model=CustomerRead, summary="Own profile", operation_id="getProfile")
def get_profile(
    customers: CustomerService = Depends(get_customer_service),
    principal: CustomerInfo = Depends(require_customer_auth()),
) -> Response:
    return resource_response(CustomerRead.model_validate(resolve_customer(principal, customers)))


@account_router.put(
    "/profile",
    response_model=CustomerRead,
    summary="Update own profile",
    operation_id="updateProfile",
    responses={409: CONFLICT_RESPONSE},
)
def update_profile(
    payload: CustomerUpdate,
    customers: CustomerService = Depends(get_customer_service),
    principal: CustomerInfo = Depends(require_customer_auth()),
) -> Response:
    customer = resolve_customer(principal, customers)
    return resource_response(CustomerRead.model_validate(customers.update_customer(customer.id, payload)))


@account_router.delete(
    "/account",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete own account",
    operation_id="deleteAccount",
    responses={409: CONFLICT_RESPONSE},
)
def delete_account(
    customers: CustomerService = Depends(get_customer_service),
    principal: CustomerInfo = Depends(require_customer_auth()),
) -> Response:
    customers.delete_customer(resolve_customer(principal, customers).id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@account_router.get(
    "/orders",
    response_model=OrderCollection,
    summary="Own orders",
    operation_id="listOwnOrders",
    responses=LIST_HEADERS,
)
def list_own_orders(
    request: Request,
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    customers: CustomerService = Depends(get_customer_service),
    orders: OrderService = Depends(get_order_service),
    principal: CustomerInfo = Depends(require_customer_auth()),
) -> Response:
    customer = resolve_customer(principal, customers)
    items = [OrderRead.model_validate(order) for order in orders.list_orders_by_customer(customer.id, limit, offset)]
    total = orders.count_orders_by_customer(customer.id)
    return paginated_response(request, OrderCollection, items, total, limit=limit, offset=offset)


@account_router.post(
    "/orders",
    response_model=OrderRead,
    status_code=status.HTTP_201_CREATED,
    summary="Place an order",
    operation_id="placeOwnOrder",
    responses={
        409: CONFLICT_RESPONSE,
        422: {"description": "Invalid payload or insufficient stock.", "content": PROBLEM_CONTENT},
    },
)
def place_own_order(
    request: Request,
    payload: CustomerOrderCreate,
    customers: CustomerService = Depends(get_customer_service),
    orders: OrderService = Depends(get_order_service),
    principal: CustomerInfo = Depends(require_customer_auth()),
) -> Response:
    customer = resolve_customer(principal, customers)
    order = orders.create_order(
        customer.id,
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


@account_router.post(
    "/orders/{order_id}/cancel",
    response_model=OrderRead,
    summary="Cancel an own order",
    operation_id="cancelOwnOrder",
    responses={409: CONFLICT_RESPONSE},
)
def cancel_own_order(
    order_id: UUID,
    customers: CustomerService = Depends(get_customer_service),
    orders: OrderService = Depends(get_order_service),
    principal: CustomerInfo = Depends(require_customer_auth()),
) -> Response:
    customer = resolve_customer(principal, customers)
    if orders.get_order(order_id).customer_id != customer.id:
        raise NotFoundError(f"Order {order_id} not found")
    return resource_response(OrderRead.model_validate(orders.cancel_order(order_id)))
