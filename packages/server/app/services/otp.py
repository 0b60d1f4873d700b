"""
One-time passcode (OTP) service.

A user row is either without a code (``otp`` and ``otp_expiry`` both NULL) or
holds exactly one pending code. Requesting a code replaces any pending one;
verifying clears it, whether it succeeds or has expired. Expiry is checked
lazily on verification.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.email import EmailSender, otp_email
from app.core.errors import OtpExpired, OtpMismatch, OtpNotRequested, UserNotFound
from app.models.base import as_utc, utcnow
from app.models.user import User

log = structlog.get_logger()

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp() -> str:
    """Six-digit code, uniform over [100000, 999999]."""
    return str(secrets.randbelow(OTP_MAX - OTP_MIN + 1) + OTP_MIN)


async def get_user_by_email(email: str, session: AsyncSession) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def request_otp(
    session: AsyncSession,
    email: str,
    sender: EmailSender,
    *,
    verification: bool = False,
    now: Optional[datetime] = None,
) -> None:
    """Issue a code for ``email`` and mail it.

    The code is stored only after the email has been handed off, so a failed
    dispatch leaves any previously pending code untouched.
    """
    user = await get_user_by_email(email, session)
    if not user:
        raise UserNotFound()

    minutes = get_settings().otp_expire_minutes
    code = generate_otp()
    expiry = (now or utcnow()) + timedelta(minutes=minutes)

    await sender.send(otp_email(user.email, code, minutes, verification=verification))

    await session.execute(
        update(User)
        .where(User.id == user.id)
        .values(otp=code, otp_expiry=expiry)
        .execution_options(synchronize_session="fetch")
    )
    log.info("otp.issued", user_id=str(user.id), verification=verification)


async def verify_otp(
    session: AsyncSession,
    email: str,
    code: str,
    *,
    now: Optional[datetime] = None,
) -> User:
    """Check ``code`` against the user's pending code and consume it."""
    user = await get_user_by_email(email, session)
    if not user:
        raise UserNotFound()

    if not user.otp or not user.otp_expiry:
        raise OtpNotRequested()

    now = now or utcnow()
    if now > as_utc(user.otp_expiry):
        user.otp = None
        user.otp_expiry = None
        session.add(user)
        # Persist the clear even though the request itself fails
        await session.commit()
        log.info("otp.expired", user_id=str(user.id))
        raise OtpExpired()

    if not secrets.compare_digest(user.otp.encode(), code.encode()):
        log.info("otp.mismatch", user_id=str(user.id))
        raise OtpMismatch()

    # Consume only if the row still holds this code; a concurrent verify that
    # read the same code loses here
    result = await session.execute(
        update(User)
        .where(User.id == user.id, User.otp == code, User.otp_expiry >= now)
        .values(otp=None, otp_expiry=None, email_verified=user.email_verified or now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        log.info("otp.already_consumed", user_id=str(user.id))
        raise OtpMismatch()
    await session.refresh(user)

    log.info("otp.verified", user_id=str(user.id))
    return user
