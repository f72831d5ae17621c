"""Local account authentication endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from ..dependencies import get_auth_service
from ..schemas import LoginRequest, LoginResponse, RefreshRequest, RegisterRequest, TokenPair, UserRead
from ..services import AuthService, IssuedTokens, LoginResult
from .common import CONFLICT_RESPONSE, PROBLEM_CONTENT, UNAUTHORIZED_RESPONSE, json_response

router = APIRouter(prefix="/auth", tags=["Auth"])


def token_pair(tokens: IssuedTokens) -> TokenPair:
    return TokenPair(access_token=tokens.access_token, refresh_token=tokens.refresh_token, expires_at=tokens.expires_at)


def _login_body(result: LoginResult) -> LoginResponse:
    return LoginResponse(user=UserRead.model_validate(result.user), tokens=token_pair(result.tokens))


@router.post(
    "/register",
    response_model=LoginResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user",
    operation_id="registerUser",
    responses={409: CONFLICT_RESPONSE, 422: {"description": "Invalid payload.", "content": PROBLEM_CONTENT}},
)
def register(payload: RegisterRequest, auth: AuthService = Depends(get_auth_service)) -> Response:
    result = auth.register(payload.name, payload.email, payload.password)
    return json_response(_login_body(result), status_code=status.HTTP_201_CREATED)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log in with email and password",
    operation_id="loginUser",
    responses={401: UNAUTHORIZED_RESPONSE},
)
def login(payload: LoginRequest, auth: AuthService = Depends(get_auth_service)) -> Response:
    return json_response(_login_body(auth.login(payload.email, payload.password)))


@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Exchange a refresh token",
    operation_id="refreshToken",
    responses={401: UNAUTHORIZED_RESPONSE},
)
def refresh(payload: RefreshRequest, auth: AuthService = Depends(get_auth_service)) -> Response:
    return json_response(token_pair(auth.refresh_token(payload.refresh_token)))
