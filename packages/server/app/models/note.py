"""Note and note edit-history models."""

from datetime import datetime
from typing import List
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import JSONType, TimestampMixin, UUIDMixin, utcnow


class Note(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "notes"

    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    title: str = Field(nullable=False)
    content: str = Field(nullable=False, sa_type=sa.Text)
    created_by_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    # is_shared mirrors bool(shared_with_roles); see app.core.sharing
    is_shared: bool = Field(default=False, nullable=False)
    shared_with_roles: List[str] = Field(default_factory=list, sa_type=JSONType, nullable=False)


class NoteEdit(UUIDMixin, SQLModel, table=True):
    """Immutable snapshot written on every title/content change."""

    __tablename__ = "note_edits"

    note_id: uuid.UUID = Field(foreign_key="notes.id", nullable=False, index=True)
    edited_by_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    title: str = Field(nullable=False)
    content: str = Field(nullable=False, sa_type=sa.Text)
    edited_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
