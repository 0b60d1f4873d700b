"""Activity log model (append-only)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, utcnow


class ActivityLog(UUIDMixin, SQLModel, table=True):
    __tablename__ = "activity_logs"

    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    action: str = Field(nullable=False)
    details: Optional[str] = Field(default=None, sa_type=sa.Text)
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        index=True,
        sa_type=sa.DateTime(timezone=True),
    )
