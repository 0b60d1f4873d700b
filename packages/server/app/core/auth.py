"""
Authentication and Authorization for SyncNotes.

Supports:
- Password hashing (bcrypt)
- JWT session management with Redis revocation list
- Session resolution from the ``sn_session`` cookie or a Bearer header
- Org-scoped membership resolution and role-based dependencies
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import NotAuthenticated, NotAuthorized, NotFound
from app.core.policy import parse_role
from app.core.redis import add_revoked_session, is_session_revoked
from app.models.membership import Membership
from app.models.organization import Organization
from app.models.user import User
from syncnotes_shared.schemas.common import Role

log = structlog.get_logger()
settings = get_settings()

SESSION_COOKIE = "sn_session"
CSRF_COOKIE = "sn_csrf"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    email: str,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# JWT Revocation
# ---------------------------------------------------------------------------

async def revoke_jwt(jti: str, ttl_seconds: int | None = None) -> None:
    """Revoke a session token for the rest of its lifetime."""
    await add_revoked_session(jti, ttl_seconds or settings.jwt_expire_minutes * 60)


async def is_jwt_revoked(jti: str) -> bool:
    """Check if a JWT ID has been revoked."""
    return await is_session_revoked(jti)


# ---------------------------------------------------------------------------
# CSRF Token
# ---------------------------------------------------------------------------

def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

def extract_token(request: Request) -> Optional[str]:
    """Bearer header first (API clients), then the session cookie (browsers)."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return request.cookies.get(SESSION_COOKIE)


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the authenticated user from the session token."""
    token = extract_token(request)
    if not token:
        raise NotAuthenticated()

    try:
        payload = decode_jwt(token)
    except jwt.PyJWTError:
        raise NotAuthenticated("Invalid or expired session")

    jti = payload.get("jti")
    if jti and await is_jwt_revoked(jti):
        raise NotAuthenticated("Session has been revoked")

    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise NotAuthenticated("Invalid or expired session")

    user = await session.get(User, user_id)
    if not user:
        raise NotAuthenticated("User not found")
    return user


class OrgContext:
    """Container for an authenticated user + their membership in one org."""

    def __init__(self, user: User, org: Organization, membership: Membership):
        self.user = user
        self.org = org
        self.membership = membership
        self.user_id = user.id
        self.org_id = org.id
        self.role: Optional[Role] = parse_role(membership.role)


async def get_membership(
    org_id: uuid.UUID, user_id: uuid.UUID, session: AsyncSession
) -> Optional[Membership]:
    result = await session.execute(
        select(Membership).where(
            Membership.org_id == org_id, Membership.user_id == user_id
        )
    )
    return result.scalar_one_or_none()


async def get_org_context(
    orgId: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> OrgContext:
    """Resolve the org from the path and the caller's membership in it."""
    org = await session.get(Organization, orgId)
    if not org:
        raise NotFound("Organization not found")

    membership = await get_membership(org.id, user.id, session)
    if not membership:
        log.info("auth.no_membership", user_id=str(user.id), org_id=str(org.id))
        raise NotAuthorized("You don't have access to this organization")

    return OrgContext(user=user, org=org, membership=membership)


# ---------------------------------------------------------------------------
# Authorization dependencies (role checks)
# ---------------------------------------------------------------------------

async def require_member(
    ctx: OrgContext = Depends(get_org_context),
) -> OrgContext:
    """Any org member (any role) can access this endpoint."""
    if ctx.role is None:
        raise NotAuthorized("You don't have access to this organization")
    return ctx


async def require_admin(
    ctx: OrgContext = Depends(get_org_context),
) -> OrgContext:
    """Requires the ADMIN role."""
    if ctx.role is not Role.ADMIN:
        raise NotAuthorized("Administrator access required")
    return ctx
