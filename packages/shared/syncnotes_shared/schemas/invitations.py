"""Invitation schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr

from .common import InvitationStatus, Role, UserSummary


class InvitationCreate(BaseModel):
    email: EmailStr
    role: Role = Role.MEMBER


class OrgSummary(BaseModel):
    id: uuid.UUID
    name: str


class InvitationRead(BaseModel):
    id: uuid.UUID
    organization: OrgSummary
    invited_by: UserSummary
    invited_user: UserSummary
    role: Role
    status: InvitationStatus  # EXPIRED is derived from expires_at
    is_registered: bool  # whether the invited user has set a password
    expires_at: datetime
    created_at: datetime


class InvitationListResponse(BaseModel):
    data: list[InvitationRead]


class InvitationAcceptResponse(BaseModel):
    org_id: uuid.UUID
    role: Role
    message: Optional[str] = None
