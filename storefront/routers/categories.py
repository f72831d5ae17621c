"""Category API endpoints."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status

from ..dependencies import get_category_service
from ..schemas import CategoryCollection, CategoryCreate, CategoryRead, CategoryUpdate
from ..security import UserInfo, require_user_auth
from ..services import CategoryService
from .common import (
    CONFLICT_RESPONSE,
    LIST_HEADERS,
    NOT_FOUND_RESPONSE,
    UNAUTHORIZED_RESPONSE,
    json_response,
    paginated_response,
    resource_response,
)

router = APIRouter(prefix="/api/categories", tags=["Categories"])


@router.get(
    "",
    response_model=CategoryCollection,
    summary="List categories",
    operation_id="listCategories",
    responses=LIST_HEADERS,
)
def list_categories(
    request: Request,
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    categories: CategoryService = Depends(get_category_service),
) -> Response:
    items = [CategoryRead.model_validate(category) for category in categories.list_categories(limit, offset)]
    return paginated_response(
        request, CategoryCollection, items, categories.count_categories(), limit=limit, offset=offset
    )


@router.get("/roots", response_model=List[CategoryRead], summary="Top-level categories", operation_id="listRootCategories")
def list_root_categories(categories: CategoryService = Depends(get_category_service)) -> Response:
    return json_response([CategoryRead.model_validate(category) for category in categories.list_root_categories()])


@router.post(
    "",
    response_model=CategoryRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create category",
    operation_id="createCategory",
    responses={401: UNAUTHORIZED_RESPONSE, 404: NOT_FOUND_RESPONSE, 409: CONFLICT_RESPONSE},
)
def create_category(
    request: Request,
    payload: CategoryCreate,
    categories: CategoryService = Depends(get_category_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    category = categories.create_category(payload)
    return resource_response(
        CategoryRead.model_validate(category),
        status_code=status.HTTP_201_CREATED,
        location=str(request.url_for("getCategory", category_id=category.id)),
    )


@router.get(
    "/{category_id}",
    response_model=CategoryRead,
    summary="Retrieve category",
    operation_id="getCategory",
    name="getCategory",
    responses={404: NOT_FOUND_RESPONSE},
)
def get_category(category_id: UUID, categories: CategoryService = Depends(get_category_service)) -> Response:
    return resource_response(CategoryRead.model_validate(categories.get_category(category_id)))


@router.get(
    "/{category_id}/children",
    response_model=List[CategoryRead],
    summary="Child categories",
    operation_id="listChildCategories",
    responses={404: NOT_FOUND_RESPONSE},
)
def list_children(category_id: UUID, categories: CategoryService = Depends(get_category_service)) -> Response:
    return json_response([CategoryRead.model_validate(category) for category in categories.list_children(category_id)])


@router.put(
    "/{category_id}",
    response_model=CategoryRead,
    summary="Update category",
    operation_id="updateCategory",
    responses={401: UNAUTHORIZED_RESPONSE, 404: NOT_FOUND_RESPONSE, 409: CONFLICT_RESPONSE},
)
def update_category(
    category_id: UUID,
    payload: CategoryUpdate,
    categories: CategoryService = Depends(get_category_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    return resource_response(CategoryRead.model_validate(categories.update_category(category_id, payload)))


@router.delete(
    "/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete category",
    operation_id="deleteCategory",
    responses={401: UNAUTHORIZED_RESPONSE, 404: NOT_FOUND_RESPONSE, 409: CONFLICT_RESPONSE},
)
def delete_category(
    category_id: UUID,
    categories: CategoryService = Depends(get_category_service),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    categories.delete_category(category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
