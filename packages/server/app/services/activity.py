"""
Activity log service. Entries are appended in the caller's transaction, so
they commit (or roll back) together with the change they describe.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.activity_log import ActivityLog
from app.models.user import User
from syncnotes_shared.schemas.activity import ActivityLogRead
from syncnotes_shared.schemas.common import UserSummary

log = structlog.get_logger()

# Action labels
ORG_CREATED = "Created Organization"
ORG_UPDATED = "Updated Organization"
MEMBER_ROLE_UPDATED = "Updated Member Role"
MEMBER_REMOVED = "Removed Member"
NOTE_CREATED = "Created Note"
NOTE_UPDATED = "Updated Note"
NOTE_DELETED = "Deleted Note"
INVITATION_SENT = "Sent Invitation"
INVITATION_CANCELLED = "Cancelled Invitation"
INVITATION_ACCEPTED = "Joined Organization"

DEFAULT_LIMIT = 100


async def record_activity(
    session: AsyncSession,
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    action: str,
    details: Optional[str] = None,
) -> ActivityLog:
    entry = ActivityLog(org_id=org_id, user_id=user_id, action=action, details=details)
    session.add(entry)
    await session.flush()
    log.info("activity.recorded", org_id=str(org_id), user_id=str(user_id), action=action)
    return entry


async def list_activity(
    org_id: uuid.UUID,
    session: AsyncSession,
    limit: int = DEFAULT_LIMIT,
) -> list[ActivityLogRead]:
    """Newest first."""
    result = await session.execute(
        select(ActivityLog, User)
        .join(User, User.id == ActivityLog.user_id)
        .where(ActivityLog.org_id == org_id)
        .order_by(ActivityLog.created_at.desc())
        .limit(limit)
    )
    return [
        ActivityLogRead(
            id=entry.id,
            org_id=entry.org_id,
            user=UserSummary.model_validate(user),
            action=entry.action,
            details=entry.details,
            created_at=entry.created_at,
        )
        for entry, user in result.all()
    ]
