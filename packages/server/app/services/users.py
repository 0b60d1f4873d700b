"""
Account service — registration, password login and profile updates.
"""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import hash_password, verify_password
from app.core.errors import Conflict, NotAuthenticated, NotAuthorized
from app.models.base import utcnow
from app.models.user import User
from app.services.otp import get_user_by_email
from syncnotes_shared.schemas.users import RegisterRequest, UserResponse

log = structlog.get_logger()


def to_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        email_verified=user.email_verified,
        has_password=user.password_hash is not None,
        created_at=user.created_at,
    )


async def register_user(req: RegisterRequest, session: AsyncSession) -> User:
    """Create an account, or claim the placeholder an invitation left behind.

    The account stays unverified until the emailed code is confirmed.
    """
    email = req.email.lower()
    user = await get_user_by_email(email, session)

    if user and user.email_verified is not None:
        raise Conflict("Email already registered")

    if user is None:
        user = User(email=email)
        claimed = False
    else:
        claimed = True

    user.name = req.name
    user.password_hash = hash_password(req.password)
    user.updated_at = utcnow()
    session.add(user)
    await session.flush()

    log.info("user.registered", user_id=str(user.id), claimed_placeholder=claimed)
    return user


async def authenticate_password(email: str, password: str, session: AsyncSession) -> User:
    """Check an email/password pair; the account must be verified."""
    user = await get_user_by_email(email, session)

    if not user or not user.password_hash:
        log.warning("auth.login_failure", reason="unknown_user_or_no_password")
        raise NotAuthenticated("Invalid email or password")

    if not verify_password(password, user.password_hash):
        log.warning("auth.login_failure", user_id=str(user.id), reason="bad_password")
        raise NotAuthenticated("Invalid email or password")

    if user.email_verified is None:
        log.info("auth.login_failure", user_id=str(user.id), reason="unverified")
        raise NotAuthorized("Please verify your email before logging in")

    log.info("auth.login_success", user_id=str(user.id))
    return user


async def update_profile(user: User, name: str, session: AsyncSession) -> User:
    user.name = name
    user.updated_at = utcnow()
    session.add(user)
    await session.flush()
    log.info("user.profile_updated", user_id=str(user.id))
    return user
