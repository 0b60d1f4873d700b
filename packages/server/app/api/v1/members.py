"""
Member management API endpoints.

GET    /api/v1/orgs/{orgId}/members               — List members
PATCH  /api/v1/orgs/{orgId}/members/{memberId}    — Change a member's role (Admin)
DELETE /api/v1/orgs/{orgId}/members/{memberId}    — Remove a member, or leave
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import OrgContext, require_admin, require_member
from app.core.database import get_session
from app.services import members as member_service
from syncnotes_shared.schemas.organizations import (
    MemberListResponse,
    MemberResponse,
    MemberRoleUpdate,
)

router = APIRouter()


@router.get("", response_model=MemberListResponse, tags=["Members"])
async def list_members(
    ctx: OrgContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """List all members of the org."""
    return MemberListResponse(data=await member_service.list_members(ctx.org_id, session))


@router.patch("/{memberId}", response_model=MemberResponse, tags=["Members"])
async def update_member_role(
    memberId: uuid.UUID,
    body: MemberRoleUpdate,
    ctx: OrgContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Change a member's role (Admin only). The last admin cannot be demoted."""
    member = await member_service.change_role(
        ctx.org_id, memberId, body.role, ctx.user_id, session
    )
    await session.commit()
    return member


@router.delete("/{memberId}", status_code=204, tags=["Members"])
async def remove_member(
    memberId: uuid.UUID,
    ctx: OrgContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Remove a member (Admin), or leave the org (self). The last admin cannot be removed."""
    await member_service.remove_member(ctx.org_id, memberId, ctx.user_id, ctx.role, session)
    await session.commit()
    return Response(status_code=204)
