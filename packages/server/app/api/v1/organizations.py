"""
Organization API endpoints.

GET    /api/v1/orgs              — List orgs for authenticated user
POST   /api/v1/orgs              — Create a new org
GET    /api/v1/orgs/{orgId}      — Get org details with members
PATCH  /api/v1/orgs/{orgId}      — Update org name/description
DELETE /api/v1/orgs/{orgId}      — Delete org and everything in it
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import OrgContext, get_current_user, require_admin, require_member
from app.core.database import get_session
from app.models.user import User
from app.services import organizations as org_service
from syncnotes_shared.schemas.common import Role
from syncnotes_shared.schemas.organizations import (
    OrgCreateRequest,
    OrgListResponse,
    OrgResponse,
    OrgUpdateRequest,
)

# ---------------------------------------------------------------------------
# Non-org-scoped routes (no orgId in path)
# ---------------------------------------------------------------------------
router_global = APIRouter()


@router_global.get("/orgs", response_model=OrgListResponse, tags=["Organizations"])
async def list_orgs(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """List orgs the authenticated user belongs to."""
    items = await org_service.list_user_orgs(user.id, session)
    return OrgListResponse(data=items)


@router_global.post("/orgs", response_model=OrgResponse, status_code=201, tags=["Organizations"])
async def create_org(
    body: OrgCreateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Create a new organization. The creator becomes an administrator."""
    org = await org_service.create_org(body, user.id, session)
    detail = await org_service.get_org_detail(org, Role.ADMIN, session)
    await session.commit()
    return detail


# ---------------------------------------------------------------------------
# Org-scoped routes (orgId in path)
# ---------------------------------------------------------------------------
router_scoped = APIRouter()


@router_scoped.get("", response_model=OrgResponse, tags=["Organizations"])
async def get_org(
    ctx: OrgContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Get org details including the member list."""
    return await org_service.get_org_detail(ctx.org, ctx.role, session)


@router_scoped.patch("", response_model=OrgResponse, tags=["Organizations"])
async def update_org(
    body: OrgUpdateRequest,
    ctx: OrgContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Update org name or description (Admin only)."""
    org = await org_service.update_org(ctx.org, body, ctx.user_id, session)
    detail = await org_service.get_org_detail(org, ctx.role, session)
    await session.commit()
    return detail


@router_scoped.delete("", status_code=204, tags=["Organizations"])
async def delete_org(
    ctx: OrgContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Delete the org with its members, notes, invitations and activity (Admin only)."""
    await org_service.delete_org(ctx.org, session)
    await session.commit()
    return Response(status_code=204)
