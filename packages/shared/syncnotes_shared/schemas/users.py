"""Account, session and OTP schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    name: str = Field(min_length=1, max_length=200)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class OtpRequest(BaseModel):
    email: EmailStr


class OtpVerifyRequest(BaseModel):
    email: EmailStr
    code: str = Field(pattern=r"^[0-9]{6}$")


class ProfileUpdateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class AuthResponse(BaseModel):
    user_id: str
    email: str
    message: str


class UserResponse(BaseModel):
    """The authenticated user's own profile."""
    id: uuid.UUID
    email: str
    name: Optional[str] = None
    email_verified: Optional[datetime] = None
    has_password: bool = False
    created_at: datetime
