"""Activity log schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from .common import UserSummary


class ActivityLogRead(BaseModel):
    id: uuid.UUID
    org_id: uuid.UUID
    user: UserSummary
    action: str
    details: Optional[str] = None
    created_at: datetime


class ActivityLogListResponse(BaseModel):
    data: list[ActivityLogRead]
