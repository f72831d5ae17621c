"""Notification endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Response, status

from ..dependencies import get_notification_dispatcher
from ..schemas import NotificationAccepted, NotificationRequest
from ..security import UserInfo, require_user_auth
from ..services import NotificationDispatcher
from .common import PROBLEM_CONTENT, UNAUTHORIZED_RESPONSE, json_response

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.post(
    "",
    response_model=NotificationAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue a notification",
    operation_id="sendNotification",
    responses={401: UNAUTHORIZED_RESPONSE, 422: {"description": "Invalid notification.", "content": PROBLEM_CONTENT}},
)
def send_notification(
    payload: Annotated[NotificationRequest, Body(discriminator="type")],
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    principal: UserInfo = Depends(require_user_auth()),
) -> Response:
    return json_response(dispatcher.dispatch(payload), status_code=status.HTTP_202_ACCEPTED)
