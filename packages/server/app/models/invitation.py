"""Invitation model."""

from datetime import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Invitation(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "invitations"

    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    invited_by_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    invited_user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    role: str = Field(nullable=False, default="MEMBER")
    status: str = Field(nullable=False, default="PENDING")  # PENDING | ACCEPTED | REJECTED (EXPIRED is derived)
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
