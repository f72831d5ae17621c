"""Health endpoint."""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..db import get_session
from ..logger import get_logger
from ..schemas import HealthResponse
from ..version import APP_VERSION

logger = get_logger(__name__)

router = APIRouter(prefix="", tags=["Status"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health",
    description="Report service health, database reachability and uptime.",
    operation_id="getHealth",
)
def get_health(request: Request, session: Session = Depends(get_session)) -> HealthResponse:
    database = "ok"
    try:
        session.exec(text("SELECT 1"))  # type: ignore[call-overload]
    except SQLAlchemyError as exc:
        logger.warning("Health check could not reach the database: %s", exc)
        database = "unavailable"

    start_time: float = getattr(request.app.state, "start_time", time.monotonic())
    oidc_client = request.app.state.oidc_client
    return HealthResponse(
        status="ok",
        version=APP_VERSION,
        database=database,
        oidc_enabled=bool(oidc_client is not None and oidc_client.configured),
        uptime_seconds=max(time.monotonic() - start_time, 0.0),
    )
