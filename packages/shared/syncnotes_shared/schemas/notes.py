"""Note and edit-history schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import Role, UserSummary


class NoteCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    shared_with_roles: list[Role] = Field(default_factory=list)


class NoteUpdate(BaseModel):
    """Partial update. Omitted sharing keeps the note's current sharing."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1)
    shared_with_roles: Optional[list[Role]] = None


class NoteEditRead(BaseModel):
    id: uuid.UUID
    title: str
    content: str
    edited_by: UserSummary
    edited_at: datetime


class NoteRead(BaseModel):
    id: uuid.UUID
    org_id: uuid.UUID
    title: str
    content: str
    created_by: UserSummary
    is_shared: bool
    shared_with_roles: list[Role]
    can_edit: bool = False
    can_delete: bool = False
    can_share: bool = False
    created_at: datetime
    updated_at: datetime


class NoteDetail(NoteRead):
    edit_history: list[NoteEditRead] = []


class NoteListResponse(BaseModel):
    data: list[NoteRead]


class NoteHistoryResponse(BaseModel):
    data: list[NoteEditRead]
