"""
Activity log API endpoints.

GET    /api/v1/orgs/{orgId}/activity    — Recent activity, newest first
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import OrgContext, require_member
from app.core.database import get_session
from app.services import activity as activity_service
from syncnotes_shared.schemas.activity import ActivityLogListResponse

router = APIRouter()


@router.get("", response_model=ActivityLogListResponse, tags=["Activity"])
async def list_activity(
    limit: int = Query(activity_service.DEFAULT_LIMIT, ge=1, le=500),
    ctx: OrgContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    entries = await activity_service.list_activity(ctx.org_id, session, limit=limit)
    return ActivityLogListResponse(data=entries)
