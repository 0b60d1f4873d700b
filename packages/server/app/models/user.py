"""User model."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    email: str = Field(unique=True, index=True, nullable=False)
    name: Optional[str] = None
    password_hash: Optional[str] = Field(default=None)  # bcrypt; None for invited placeholders
    # otp and otp_expiry are always written together
    otp: Optional[str] = Field(default=None, max_length=6)
    otp_expiry: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    email_verified: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
