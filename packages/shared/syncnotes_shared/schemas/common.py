import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class Role(str, Enum):
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"


# Canonical ordering used when persisting role sets
ROLE_ORDER: list["Role"] = [Role.ADMIN, Role.MEMBER, Role.VIEWER]


class InvitationStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class UserSummary(BaseModel):
    """Public projection of a user embedded in other responses."""
    id: uuid.UUID
    email: str
    name: Optional[str] = None

    model_config = {"from_attributes": True}


class ErrorBody(BaseModel):
    code: str
    message: str
    status: int


class ErrorResponse(BaseModel):
    error: ErrorBody
