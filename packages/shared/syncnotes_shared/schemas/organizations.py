"""
Organization and membership schemas.

Covers: org CRUD request/response, member listing and role changes.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import Role, UserSummary


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class OrgCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Organization display name")
    description: Optional[str] = Field(None, max_length=1000)


class OrgUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)


class MemberRoleUpdate(BaseModel):
    role: Role


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class MemberResponse(BaseModel):
    id: uuid.UUID
    user: UserSummary
    role: Role
    joined_at: datetime


class MemberListResponse(BaseModel):
    data: list[MemberResponse]


class OrgResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    role: Role  # the requesting user's role in this org
    members: list[MemberResponse] = []
    created_at: datetime
    updated_at: datetime


class OrgListItem(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    role: Role
    member_count: int
    created_at: datetime

    model_config = {"from_attributes": True}


class OrgListResponse(BaseModel):
    data: list[OrgListItem]
