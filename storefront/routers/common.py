"""Helpers shared by the API routers."""

from __future__ import annotations

import hashlib
import json
from typing import Any, Optional, Sequence, Type, TypeVar

from fastapi import Request, Response, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

from ..schemas import PaginationLinks, ProblemDetail

CollectionT = TypeVar("CollectionT", bound=BaseModel)

PROBLEM_CONTENT = {"application/problem+json": {"schema": ProblemDetail.model_json_schema()}}
UNAUTHORIZED_RESPONSE = {
    "description": "Authentication required.",
    "content": PROBLEM_CONTENT,
    "headers": {"WWW-Authenticate": {"schema": {"type": "string"}}},
}
NOT_FOUND_RESPONSE = {"description": "Resource not found.", "content": PROBLEM_CONTENT}
CONFLICT_RESPONSE = {"description": "Conflicting resource state.", "content": PROBLEM_CONTENT}
LIST_HEADERS = {
    200: {
        "headers": {
            "ETag": {"schema": {"type": "string"}},
            "X-Total-Count": {"schema": {"type": "integer"}},
            "Link": {"schema": {"type": "string"}},
        }
    }
}


def compute_etag(payload: object) -> str:
    encoded = json.dumps(jsonable_encoder(payload, by_alias=True), sort_keys=True, separators=(",", ":")).encode("utf-8")
    return f'W/"{hashlib.sha256(encoded).hexdigest()}"'


def json_response(payload: object, *, status_code: int = 200, headers: Optional[dict[str, str]] = None) -> Response:
    return Response(
        status_code=status_code,
        content=json.dumps(jsonable_encoder(payload), ensure_ascii=False, separators=(",", ":")),
        media_type="application/json; charset=utf-8",
        headers=headers,
    )


def resource_response(
    payload: BaseModel, *, status_code: int = status.HTTP_200_OK, location: Optional[str] = None
) -> Response:
    """Serialize a single resource with its ETag."""

    headers = {"ETag": compute_etag(payload), "Cache-Control": "no-cache"}
    if location is not None:
        headers["Location"] = location
    return json_response(payload, status_code=status_code, headers=headers)


def paginated_response(
    request: Request,
    collection_cls: Type[CollectionT],
    items: Sequence[Any],
    total: int,
    *,
    limit: int,
    offset: int,
) -> Response:
    """Build a collection body plus ``Link`` and ``X-Total-Count`` headers."""

    links = PaginationLinks(self=str(request.url))
    links_header = [f'<{links.self}>; rel="self"']
    if offset + limit < total:
        links.next = str(request.url.include_query_params(offset=offset + limit, limit=limit))
        links_header.append(f'<{links.next}>; rel="next"')
    if offset > 0:
        links.prev = str(request.url.include_query_params(offset=max(offset - limit, 0), limit=limit))
        links_header.append(f'<{links.prev}>; rel="prev"')

    collection = collection_cls(items=list(items), count=total, links=links)
    headers = {
        "ETag": compute_etag(collection),
        "Cache-Control": "no-cache",
        "X-Total-Count": str(total),
        "Link": ", ".join(links_header),
    }
    return json_response(collection, headers=headers)
