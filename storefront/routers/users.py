"""User API endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status

from ..dependencies import get_user_service
from ..schemas import UserCollection, UserRead, UserUpdate
from ..security import UserInfo, require_user_auth
from ..services import UserService
from .common import (
    CONFLICT_RESPONSE,
    LIST_HEADERS,
    NOT_FOUND_RESPONSE,
    UNAUTHORIZED_RESPONSE,
    paginated_response,
    resource_response,
)

router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
    responses={401: UNAUTHORIZED_RESPONSE},
)


@router.get("", response_model=UserCollection, summary="List users", operation_id="listUsers", responses=LIST_HEADERS)
def list_users(
    request: Request,
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    users: UserService = Depends(get_user_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    items = [UserRead.model_validate(user) for user in users.list_users(limit, offset)]
    return paginated_response(request, UserCollection, items, users.count_users(), limit=limit, offset=offset)


@router.get("/me", response_model=UserRead, summary="Current user", operation_id="getCurrentUser")
def get_me(
    users: UserService = Depends(get_user_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    return resource_response(UserRead.model_validate(users.get_user(principal.user_id)))


@router.put(
    "/me",
    response_model=UserRead,
    summary="Update current user",
    operation_id="updateCurrentUser",
    responses={409: CONFLICT_RESPONSE},
)
def update_me(
    payload: UserUpdate,
    users: UserService = Depends(get_user_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    return resource_response(UserRead.model_validate(users.update_user(principal.user_id, payload)))


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete current user",
    operation_id="deleteCurrentUser",
)
def delete_me(
    users: UserService = Depends(get_user_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    users.delete_user(principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{user_id}",
    response_model=UserRead,
    summary="Retrieve user",
    operation_id="getUser",
    responses={404: NOT_FOUND_RESPONSE},
)
def get_user(
    user_id: UUID,
    users: UserService = Depends(get_user_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    return resource_response(UserRead.model_validate(users.get_user(user_id)))
