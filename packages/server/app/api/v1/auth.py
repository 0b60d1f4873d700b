"""
Authentication endpoints.

- Email/password registration (verified by an emailed code) and login
- Passwordless login with a one-time code
- JWT session management (refresh, logout)
"""

from __future__ import annotations

import uuid

import jwt
import structlog
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    CSRF_COOKIE,
    SESSION_COOKIE,
    create_jwt,
    decode_jwt,
    extract_token,
    generate_csrf_token,
    is_jwt_revoked,
    revoke_jwt,
)
from app.core.config import get_settings
from app.core.database import get_session
from app.core.email import EmailSender, get_email_sender
from app.core.errors import NotAuthenticated
from app.models.user import User
from app.services import otp as otp_service
from app.services import users as user_service
from syncnotes_shared.schemas.users import (
    AuthResponse,
    LoginRequest,
    OtpRequest,
    OtpVerifyRequest,
    RegisterRequest,
)

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()

# Cookie config
COOKIE_KWARGS = {
    "httponly": True,
    "secure": not settings.debug,  # allow non-HTTPS in dev
    "samesite": "lax",
    "path": "/",
    "max_age": settings.jwt_expire_minutes * 60,
}


def _set_session_cookies(response: Response, token: str, csrf: str) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    response.set_cookie(key=SESSION_COOKIE, value=token, **COOKIE_KWARGS)
    response.set_cookie(key=CSRF_COOKIE, value=csrf, **{**COOKIE_KWARGS, "httponly": False})


def _issue_session(response: Response, user: User) -> None:
    token, _jti = create_jwt(user.id, user.email)
    _set_session_cookies(response, token, generate_csrf_token())


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    session: AsyncSession = Depends(get_session),
    sender: EmailSender = Depends(get_email_sender),
):
    """Create an account and email a verification code."""
    user = await user_service.register_user(body, session)
    await otp_service.request_otp(session, user.email, sender, verification=True)
    await session.commit()
    return AuthResponse(
        user_id=str(user.id),
        email=user.email,
        message="Registration successful. Check your email for a verification code.",
    )


@router.post("/verify-email", response_model=AuthResponse)
async def verify_email(
    body: OtpVerifyRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Confirm the emailed code and start a session."""
    user = await otp_service.verify_otp(session, body.email, body.code)
    await session.commit()
    _issue_session(response, user)
    return AuthResponse(user_id=str(user.id), email=user.email, message="Email verified")


# ---------------------------------------------------------------------------
# Password login
# ---------------------------------------------------------------------------

@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate with email/password and receive a JWT session."""
    user = await user_service.authenticate_password(body.email, body.password, session)
    _issue_session(response, user)
    return AuthResponse(user_id=str(user.id), email=user.email, message="Login successful")


# ---------------------------------------------------------------------------
# One-time code login
# ---------------------------------------------------------------------------

@router.post("/otp/request")
async def request_otp(
    body: OtpRequest,
    session: AsyncSession = Depends(get_session),
    sender: EmailSender = Depends(get_email_sender),
):
    """Email a fresh login code, replacing any pending one."""
    await otp_service.request_otp(session, body.email, sender)
    await session.commit()
    return {"message": "Code sent. Check your email."}


@router.post("/otp/verify", response_model=AuthResponse)
async def verify_otp(
    body: OtpVerifyRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Exchange a valid login code for a JWT session."""
    user = await otp_service.verify_otp(session, body.email, body.code)
    await session.commit()
    _issue_session(response, user)
    log.info("auth.login_success", user_id=str(user.id), method="otp")
    return AuthResponse(user_id=str(user.id), email=user.email, message="Login successful")


# ---------------------------------------------------------------------------
# Session Management
# ---------------------------------------------------------------------------

@router.post("/refresh")
async def refresh_session(request: Request, response: Response):
    """Refresh the current JWT session by issuing a new token."""
    token = extract_token(request)
    if not token:
        raise NotAuthenticated("No active session")

    try:
        payload = decode_jwt(token)
    except jwt.PyJWTError:
        raise NotAuthenticated("Invalid or expired session")

    jti = payload.get("jti")
    if jti and await is_jwt_revoked(jti):
        raise NotAuthenticated("Session has been revoked")

    # Issue new JWT, revoke old one
    new_token, _new_jti = create_jwt(uuid.UUID(payload["sub"]), payload["email"])
    if jti:
        await revoke_jwt(jti)

    _set_session_cookies(response, new_token, generate_csrf_token())
    return {"message": "Session refreshed"}


@router.post("/logout")
async def logout(request: Request, response: Response):
    """Invalidate the current session."""
    token = extract_token(request)
    if token:
        try:
            payload = decode_jwt(token)
        except jwt.PyJWTError:
            payload = {}  # already invalid, just clear cookies
        jti = payload.get("jti")
        if jti:
            await revoke_jwt(jti)

    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")
    return {"message": "Logged out"}
