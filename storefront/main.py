"""Application entrypoint."""

from __future__ import annotations

import json
import time
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from . import routers
from .config import DEFAULT_ACCESS_SECRET, Settings, get_settings
from .db import create_db_and_tables, create_db_engine
from .errors import ServiceError, StoreError
from .logger import configure_logging, get_logger
from .oidc import OIDCClient
from .schemas import ProblemDetail
from .services import OrderNumberAllocator
from .tokens import TokenIssuer
from .version import APP_VERSION

logger = get_logger(__name__)


class UTF8JSONResponse(JSONResponse):
    """JSON response that always declares UTF-8."""

    media_type = "application/json; charset=utf-8"


async def problem_response(
    request: Request,
    status_code: int,
    title: str,
    detail: str,
    type_: str | None = None,
    headers: dict[str, str] | None = None,
    code: str | None = None,
) -> JSONResponse:
    problem = ProblemDetail(
        type=type_ or f"https://httpstatuses.com/{status_code}",
        title=title,
        status=status_code,
        detail=detail,
        instance=str(request.url.path),
        code=code,
    )
    return JSONResponse(
        status_code=status_code,
        content=json.loads(problem.model_dump_json(exclude_none=True)),
        media_type="application/problem+json",
        headers=headers,
    )


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    detail = "; ".join(
        f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return await problem_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        detail or "Request validation failed",
        code="VALIDATION_ERROR",
    )


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    title = HTTPStatus(exc.status_code).phrase
    detail = exc.detail if isinstance(exc.detail, str) else json.dumps(exc.detail)
    code = "UNAUTHENTICATED" if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return await problem_response(request, exc.status_code, title, detail, headers=exc.headers, code=code)


async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.detail)
    return await problem_response(request, exc.status_code, exc.title, exc.detail, headers=headers, code=exc.code)


async def handle_store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database failure on %s %s: %s", request.method, request.url.path, exc)
    return await handle_service_error(request, StoreError("Database operation failed"))


def create_app(
    settings: Optional[Settings] = None,
    *,
    engine: Optional[Engine] = None,
    oidc_client: Optional[OIDCClient] = None,
    order_numbers: Optional[OrderNumberAllocator] = None,
) -> FastAPI:
    """Build the application.

    Collaborators default to ones derived from ``settings``; tests pass their
    own engine, OIDC client or order number allocator.
    """

    settings = settings or get_settings()
    configure_logging(settings.logging.level)
    if settings.auth.jwt_secret == DEFAULT_ACCESS_SECRET:
        logger.warning("Using the built-in development JWT secret; set JWT_SECRET in production")

    engine = engine or create_db_engine(
        settings.database.dsn,
        echo=settings.database.echo,
        statement_timeout=settings.database.statement_timeout,
    )
    if oidc_client is None and settings.oidc.enabled:
        oidc_client = OIDCClient(settings.oidc)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.start_time = time.monotonic()
        create_db_and_tables(engine)
        logger.info("Storefront %s started", APP_VERSION)
        yield
        if app.state.oidc_client is not None:
            app.state.oidc_client.close()
        logger.info("Storefront stopped")

    app = FastAPI(
        title="Storefront API",
        summary="Customers, catalog and orders with local and OIDC authentication.",
        version=APP_VERSION,
        default_response_class=UTF8JSONResponse,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.oidc_client = oidc_client
    app.state.token_issuer = TokenIssuer(
        settings.auth.jwt_secret,
        settings.auth.jwt_refresh_secret,
        settings.auth.jwt_expiry,
        settings.auth.jwt_refresh_expiry,
    )
    app.state.order_numbers = order_numbers or OrderNumberAllocator(settings.orders.number_strategy)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(ServiceError, handle_service_error)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, handle_store_error)  # type: ignore[arg-type]

    app.include_router(routers.status.router)
    app.include_router(routers.auth.router)
    app.include_router(routers.oidc.router)
    app.include_router(routers.users.router)
    app.include_router(routers.customers.router)
    app.include_router(routers.customers.account_router)
    app.include_router(routers.categories.router)
    app.include_router(routers.products.router)
    app.include_router(routers.orders.router)
    app.include_router(routers.notifications.router)
    return app
