"""
Tests for Authentication and Authorization.

Covers:
- Password hashing
- JWT creation, decoding, revocation
- CSRF middleware
- Security headers middleware
- Role-based authorization (require_member, require_admin)
- Registration, email verification, password and OTP login, refresh, logout
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import jwt as pyjwt
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlmodel import select

from app.core.auth import (
    CSRF_COOKIE,
    SESSION_COOKIE,
    OrgContext,
    create_jwt,
    decode_jwt,
    generate_csrf_token,
    hash_password,
    require_admin,
    require_member,
    verify_password,
)
from app.core.errors import NotAuthorized
from app.core.middleware import CSRFMiddleware, SecurityHeadersMiddleware, SECURITY_HEADERS
from app.core.redis import REVOKED_SESSION_PREFIX
from app.models.user import User


# ---------------------------------------------------------------------------
# Unit Tests: Password hashing
# ---------------------------------------------------------------------------

class TestPasswordHashing:
    def test_hash_and_verify(self):
        password = "MySecureP@ssw0rd!"
        hashed = hash_password(password)
        assert hashed != password
        assert verify_password(password, hashed)

    def test_wrong_password_fails(self):
        hashed = hash_password("correct-password")
        assert not verify_password("wrong-password", hashed)

    def test_different_hashes_for_same_password(self):
        """bcrypt uses random salt, so hashes differ."""
        h1 = hash_password("same")
        h2 = hash_password("same")
        assert h1 != h2
        assert verify_password("same", h1)
        assert verify_password("same", h2)


# ---------------------------------------------------------------------------
# Unit Tests: JWT
# ---------------------------------------------------------------------------

class TestJWT:
    def test_create_and_decode(self):
        uid = uuid.uuid4()
        token, jti = create_jwt(uid, "a@example.com")
        payload = decode_jwt(token)
        assert payload["sub"] == str(uid)
        assert payload["email"] == "a@example.com"
        assert payload["jti"] == jti

    def test_expired_jwt_raises(self):
        token, _ = create_jwt(uuid.uuid4(), "a@example.com", expires_delta=timedelta(seconds=-1))
        with pytest.raises(pyjwt.ExpiredSignatureError):
            decode_jwt(token)

    def test_tampered_jwt_raises(self):
        token, _ = create_jwt(uuid.uuid4(), "a@example.com")
        tampered = token[:-5] + "XXXXX"
        with pytest.raises(pyjwt.PyJWTError):
            decode_jwt(tampered)


# ---------------------------------------------------------------------------
# Unit Tests: CSRF Token
# ---------------------------------------------------------------------------

class TestCSRFToken:
    def test_generates_unique_tokens(self):
        t1 = generate_csrf_token()
        t2 = generate_csrf_token()
        assert t1 != t2
        assert len(t1) > 20


# ---------------------------------------------------------------------------
# Integration Tests: Middleware
# ---------------------------------------------------------------------------

class TestSecurityHeadersMiddleware:
    def test_headers_present(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware)

        @app.get("/test")
        async def test_endpoint():
            return {"ok": True}

        client = TestClient(app)
        resp = client.get("/test")
        assert resp.status_code == 200
        for header, value in SECURITY_HEADERS.items():
            assert resp.headers.get(header) == value


class TestCSRFMiddleware:
    def _make_app(self) -> FastAPI:
        app = FastAPI()
        app.add_middleware(CSRFMiddleware)

        @app.get("/test")
        async def get_test():
            return {"ok": True}

        @app.post("/test")
        async def post_test():
            return {"ok": True}

        return app

    def test_get_passes_without_csrf(self):
        client = TestClient(self._make_app())
        resp = client.get("/test")
        assert resp.status_code == 200

    def test_post_with_bearer_skips_csrf(self):
        client = TestClient(self._make_app(), cookies={SESSION_COOKIE: "some-jwt"})
        resp = client.post("/test", headers={"Authorization": "Bearer some-jwt"})
        assert resp.status_code == 200

    def test_post_without_session_cookie_passes(self):
        """No session cookie = not a browser request, skip CSRF."""
        client = TestClient(self._make_app())
        resp = client.post("/test")
        assert resp.status_code == 200

    def test_post_with_session_but_no_csrf_fails(self):
        client = TestClient(self._make_app(), cookies={SESSION_COOKIE: "some-jwt"})
        resp = client.post("/test")
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "CSRF_VALIDATION_FAILED"

    def test_post_with_matching_csrf_passes(self):
        csrf_token = "test-csrf-token"
        client = TestClient(
            self._make_app(),
            cookies={SESSION_COOKIE: "some-jwt", CSRF_COOKIE: csrf_token},
        )
        resp = client.post("/test", headers={"X-CSRF-Token": csrf_token})
        assert resp.status_code == 200

    def test_post_with_mismatched_csrf_fails(self):
        client = TestClient(
            self._make_app(),
            cookies={SESSION_COOKIE: "some-jwt", CSRF_COOKIE: "token-a"},
        )
        resp = client.post("/test", headers={"X-CSRF-Token": "token-b"})
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Unit Tests: Role-based auth matrix
# ---------------------------------------------------------------------------

class TestAuthorizationMatrix:
    """
    Verify that role dependencies enforce correct access levels.

    Uses mock OrgContext objects to test the dependency functions directly.
    """

    def _mock_ctx(self, role: str) -> OrgContext:
        user = MagicMock()
        user.id = uuid.uuid4()
        org = MagicMock()
        org.id = uuid.uuid4()
        membership = MagicMock()
        membership.role = role
        return OrgContext(user=user, org=org, membership=membership)

    async def test_member_allows_all_roles(self):
        for role in ("ADMIN", "MEMBER", "VIEWER"):
            ctx = self._mock_ctx(role)
            assert await require_member(ctx) is ctx

    async def test_member_rejects_unknown_role(self):
        with pytest.raises(NotAuthorized):
            await require_member(self._mock_ctx("administrator"))

    async def test_admin_allows_admin(self):
        ctx = self._mock_ctx("ADMIN")
        assert await require_admin(ctx) is ctx

    @pytest.mark.parametrize("role", ["MEMBER", "VIEWER"])
    async def test_admin_rejects_others(self, role):
        with pytest.raises(NotAuthorized) as exc_info:
            await require_admin(self._mock_ctx(role))
        assert exc_info.value.status_code == 403


# ---------------------------------------------------------------------------
# Unit Tests: JWT Revocation (mocked Redis)
# ---------------------------------------------------------------------------

class TestJWTRevocation:
    async def test_revoke_and_check(self):
        mock_redis = AsyncMock()
        mock_redis.setex = AsyncMock()
        mock_redis.exists = AsyncMock(return_value=1)

        with patch("app.core.redis.get_redis", AsyncMock(return_value=mock_redis)):
            from app.core.auth import revoke_jwt, is_jwt_revoked

            await revoke_jwt("test-jti-123", ttl_seconds=3600)
            mock_redis.setex.assert_called_once_with(
                "syncnotes:revoked-session:test-jti-123", 3600, "1"
            )

            result = await is_jwt_revoked("test-jti-123")
            assert result is True

    async def test_non_revoked_jwt(self):
        mock_redis = AsyncMock()
        mock_redis.exists = AsyncMock(return_value=0)

        with patch("app.core.redis.get_redis", AsyncMock(return_value=mock_redis)):
            from app.core.auth import is_jwt_revoked
            result = await is_jwt_revoked("non-existent-jti")
            assert result is False


# ---------------------------------------------------------------------------
# Integration Tests: Auth Endpoints
# ---------------------------------------------------------------------------

async def _stored_otp(db, email: str) -> str:
    async with db() as session:
        result = await session.execute(select(User).where(User.email == email))
        return result.scalar_one().otp


class TestRegistration:
    async def test_register_sends_verification_code(self, client, db, email_sender):
        resp = await client.post(
            "/auth/register",
            json={"email": "new@example.com", "password": "long-enough", "name": "New"},
        )
        assert resp.status_code == 201
        assert resp.json()["email"] == "new@example.com"
        assert len(email_sender.sent) == 1
        assert "Verify" in email_sender.sent[0].subject
        assert await _stored_otp(db, "new@example.com")

    async def test_short_password_rejected(self, client):
        resp = await client.post(
            "/auth/register",
            json={"email": "new@example.com", "password": "short", "name": "New"},
        )
        assert resp.status_code == 422

    async def test_verified_email_conflicts(self, client, make_user):
        await make_user("taken@example.com")
        resp = await client.post(
            "/auth/register",
            json={"email": "taken@example.com", "password": "long-enough", "name": "X"},
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "CONFLICT"

    async def test_register_claims_invited_placeholder(self, client, db, make_user):
        placeholder = await make_user("invited@example.com", verified=False)
        resp = await client.post(
            "/auth/register",
            json={"email": "invited@example.com", "password": "long-enough", "name": "Inv"},
        )
        assert resp.status_code == 201
        assert resp.json()["user_id"] == str(placeholder.id)

    async def test_email_failure_rolls_back_registration(self, client, db, email_sender):
        email_sender.fail = True
        resp = await client.post(
            "/auth/register",
            json={"email": "new@example.com", "password": "long-enough", "name": "New"},
        )
        assert resp.status_code == 502
        assert resp.json()["error"]["code"] == "EMAIL_DISPATCH_FAILED"
        async with db() as session:
            result = await session.execute(select(User).where(User.email == "new@example.com"))
            assert result.scalar_one_or_none() is None

    async def test_verify_email_then_login(self, client, db):
        await client.post(
            "/auth/register",
            json={"email": "new@example.com", "password": "long-enough", "name": "New"},
        )
        login = {"email": "new@example.com", "password": "long-enough"}

        resp = await client.post("/auth/login", json=login)
        assert resp.status_code == 403

        code = await _stored_otp(db, "new@example.com")
        resp = await client.post(
            "/auth/verify-email", json={"email": "new@example.com", "code": code}
        )
        assert resp.status_code == 200
        assert SESSION_COOKIE in resp.cookies
        assert CSRF_COOKIE in resp.cookies

        # A cookie session would require the CSRF header on the next POST
        client.cookies.clear()
        resp = await client.post("/auth/login", json=login)
        assert resp.status_code == 200


class TestPasswordLogin:
    async def test_login_sets_session(self, client, make_user):
        await make_user("bob@example.com", password="correct-horse")
        resp = await client.post(
            "/auth/login", json={"email": "bob@example.com", "password": "correct-horse"}
        )
        assert resp.status_code == 200
        token = resp.cookies[SESSION_COOKIE]
        assert decode_jwt(token)["email"] == "bob@example.com"

    async def test_wrong_password(self, client, make_user):
        await make_user("bob@example.com", password="correct-horse")
        resp = await client.post(
            "/auth/login", json={"email": "bob@example.com", "password": "battery-staple"}
        )
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "NOT_AUTHENTICATED"

    async def test_user_without_password(self, client, make_user):
        await make_user("otp-only@example.com")
        resp = await client.post(
            "/auth/login", json={"email": "otp-only@example.com", "password": "whatever1"}
        )
        assert resp.status_code == 401


class TestOtpLogin:
    async def test_request_and_verify(self, client, db, make_user, email_sender):
        await make_user("carol@example.com")
        resp = await client.post("/auth/otp/request", json={"email": "carol@example.com"})
        assert resp.status_code == 200
        assert len(email_sender.sent) == 1

        code = await _stored_otp(db, "carol@example.com")
        resp = await client.post(
            "/auth/otp/verify", json={"email": "carol@example.com", "code": code}
        )
        assert resp.status_code == 200
        assert SESSION_COOKIE in resp.cookies
        assert await _stored_otp(db, "carol@example.com") is None

    async def test_unknown_email(self, client, email_sender):
        resp = await client.post("/auth/otp/request", json={"email": "a@example.com"})
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "USER_NOT_FOUND"
        assert email_sender.sent == []

    async def test_dispatch_failure(self, client, db, make_user, email_sender):
        await make_user("carol@example.com")
        email_sender.fail = True
        resp = await client.post("/auth/otp/request", json={"email": "carol@example.com"})
        assert resp.status_code == 502
        assert await _stored_otp(db, "carol@example.com") is None

    async def test_verify_without_request(self, client, make_user):
        await make_user("carol@example.com")
        resp = await client.post(
            "/auth/otp/verify", json={"email": "carol@example.com", "code": "123456"}
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "OTP_NOT_REQUESTED"

    async def test_wrong_code(self, client, db, make_user):
        await make_user("carol@example.com")
        await client.post("/auth/otp/request", json={"email": "carol@example.com"})
        code = await _stored_otp(db, "carol@example.com")
        wrong = "100000" if code != "100000" else "100001"
        resp = await client.post(
            "/auth/otp/verify", json={"email": "carol@example.com", "code": wrong}
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "OTP_MISMATCH"

    async def test_malformed_code(self, client):
        resp = await client.post(
            "/auth/otp/verify", json={"email": "carol@example.com", "code": "12ab"}
        )
        assert resp.status_code == 422

    async def test_non_ascii_digits_rejected(self, client, db, make_user):
        await make_user("carol@example.com")
        await client.post("/auth/otp/request", json={"email": "carol@example.com"})
        code = await _stored_otp(db, "carol@example.com")

        resp = await client.post(
            "/auth/otp/verify", json={"email": "carol@example.com", "code": "١٢٣٤٥٦"}
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "VALIDATION_FAILED"
        assert await _stored_otp(db, "carol@example.com") == code


class TestSessionManagement:
    async def test_me_requires_session(self, client):
        resp = await client.get("/api/v1/users/me")
        assert resp.status_code == 401

    async def test_me_with_bearer(self, client, make_user, auth_headers):
        user = await make_user("dan@example.com", name="Dan")
        resp = await client.get("/api/v1/users/me", headers=auth_headers(user))
        assert resp.status_code == 200
        data = resp.json()
        assert data["email"] == "dan@example.com"
        assert data["name"] == "Dan"
        assert data["has_password"] is False

    async def test_update_profile(self, client, make_user, auth_headers):
        user = await make_user("dan@example.com", name="Dan")
        resp = await client.patch(
            "/api/v1/users/me", json={"name": "Daniel"}, headers=auth_headers(user)
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Daniel"

    async def test_logout_revokes_token(self, client, make_user, auth_headers, fake_redis):
        user = await make_user("dan@example.com")
        headers = auth_headers(user)

        resp = await client.post("/auth/logout", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Logged out"
        assert len(fake_redis.store) == 1
        assert next(iter(fake_redis.store)).startswith(REVOKED_SESSION_PREFIX)

        resp = await client.get("/api/v1/users/me", headers=headers)
        assert resp.status_code == 401

    async def test_logout_without_session(self, client):
        resp = await client.post("/auth/logout")
        assert resp.status_code == 200

    async def test_refresh_rotates_token(self, client, make_user, auth_headers):
        user = await make_user("dan@example.com")
        headers = auth_headers(user)

        resp = await client.post("/auth/refresh", headers=headers)
        assert resp.status_code == 200
        new_token = resp.cookies[SESSION_COOKIE]

        resp = await client.get("/api/v1/users/me", headers=headers)
        assert resp.status_code == 401
        resp = await client.get(
            "/api/v1/users/me", headers={"Authorization": f"Bearer {new_token}"}
        )
        assert resp.status_code == 200

    async def test_garbage_token(self, client):
        resp = await client.get(
            "/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert resp.status_code == 401
