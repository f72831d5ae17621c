"""OpenID Connect login endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Query, Request, Response, status

from ..dependencies import get_auth_service
from ..logger import get_logger
from ..schemas import AuthURLResponse, CustomerRead, MessageResponse, OIDCLoginResponse, OIDCUserInfoRead
from ..security import CustomerInfo, Principal, optional_auth, require_oidc_auth
from ..services import AuthService
from .auth import token_pair
from .common import PROBLEM_CONTENT, UNAUTHORIZED_RESPONSE, json_response

logger = get_logger(__name__)

router = APIRouter(prefix="/auth/oidc", tags=["OIDC"])

STATE_COOKIE = "oidc_state"
STATE_COOKIE_MAX_AGE = 600
UNCONFIGURED_RESPONSE = {"description": "OIDC is not configured.", "content": PROBLEM_CONTENT}
PROVIDER_RESPONSE = {"description": "The identity provider failed.", "content": PROBLEM_CONTENT}


@router.get(
    "/login",
    response_model=AuthURLResponse,
    summary="Start the OIDC login",
    operation_id="oidcLogin",
    responses={503: UNCONFIGURED_RESPONSE, 502: PROVIDER_RESPONSE},
)
def oidc_login(request: Request, auth: AuthService = Depends(get_auth_service)) -> Response:
    url, state = auth.get_oidc_auth_url()
    response = json_response(AuthURLResponse(auth_url=url, state=state))
    response.set_cookie(
        STATE_COOKIE,
        state,
        max_age=STATE_COOKIE_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=request.url.scheme == "https",
    )
    return response


@router.get(
    "/callback",
    response_model=OIDCLoginResponse,
    summary="Complete the OIDC login",
    operation_id="oidcCallback",
    responses={
        400: {"description": "The provider reported an error.", "content": PROBLEM_CONTENT},
        401: UNAUTHORIZED_RESPONSE,
        502: PROVIDER_RESPONSE,
        503: UNCONFIGURED_RESPONSE,
    },
)
def oidc_callback(
    code: Optional[str] = Query(default=None),
    state: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None),
    error_description: Optional[str] = Query(default=None),
    state_cookie: Optional[str] = Cookie(default=None, alias=STATE_COOKIE),
    auth: AuthService = Depends(get_auth_service),
) -> Response:
    if error:
        detail = f"{error}: {error_description}" if error_description else error
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"OIDC provider error: {detail}")
    if not code or not state:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing code or state parameter")

    result = auth.handle_oidc_callback(code, state, expected_state=state_cookie)
    body = OIDCLoginResponse(
        customer=CustomerRead.model_validate(result.customer),
        tokens=token_pair(result.tokens),
        is_new_user=result.is_new_user,
    )
    response = json_response(body)
    response.delete_cookie(STATE_COOKIE)
    return response


@router.get(
    "/validate",
    response_model=OIDCUserInfoRead,
    summary="Validate an ID token",
    operation_id="oidcValidate",
    responses={401: UNAUTHORIZED_RESPONSE},
)
def oidc_validate(principal: CustomerInfo = Depends(require_oidc_auth())) -> Response:
    # require_oidc_auth only admits ID-token principals, which always carry claims.
    return json_response(OIDCUserInfoRead.model_validate(principal.claims))


@router.post("/logout", response_model=MessageResponse, summary="Log out", operation_id="oidcLogout")
def oidc_logout(principal: Optional[Principal] = Depends(optional_auth())) -> Response:
    if principal is not None:
        logger.info("Logged out %s", principal.email)
    response = json_response(MessageResponse(message="Logged out"))
    response.delete_cookie(STATE_COOKIE)
    return response
