"""
Invitation API endpoints.

Org-scoped (invitations sent by an org):
POST   /api/v1/orgs/{orgId}/invitations                  — Invite by email (Admin)
GET    /api/v1/orgs/{orgId}/invitations                  — List the org's invitations
DELETE /api/v1/orgs/{orgId}/invitations/{invitationId}   — Cancel an invitation (Admin)

Invitee (invitations received by the caller):
GET    /api/v1/invitations                               — List own invitations
GET    /api/v1/invitations/{invitationId}                — Get one
POST   /api/v1/invitations/{invitationId}/accept         — Join the org
POST   /api/v1/invitations/{invitationId}/reject         — Decline
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import OrgContext, get_current_user, require_admin, require_member
from app.core.database import get_session
from app.core.email import EmailSender, get_email_sender
from app.models.user import User
from app.services import invitations as invitation_service
from syncnotes_shared.schemas.common import Role
from syncnotes_shared.schemas.invitations import (
    InvitationAcceptResponse,
    InvitationCreate,
    InvitationListResponse,
    InvitationRead,
)

# ---------------------------------------------------------------------------
# Org-scoped routes
# ---------------------------------------------------------------------------
router_scoped = APIRouter()


@router_scoped.post("", response_model=InvitationRead, status_code=201, tags=["Invitations"])
async def create_invitation(
    body: InvitationCreate,
    ctx: OrgContext = Depends(require_admin),
    sender: EmailSender = Depends(get_email_sender),
    session: AsyncSession = Depends(get_session),
):
    """Invite someone by email (Admin only). Unknown emails get a placeholder account."""
    invitation = await invitation_service.invite(ctx.org, body, ctx.user, sender, session)
    await session.commit()
    return invitation


@router_scoped.get("", response_model=InvitationListResponse, tags=["Invitations"])
async def list_org_invitations(
    ctx: OrgContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    return InvitationListResponse(
        data=await invitation_service.list_org_invitations(ctx.org_id, session)
    )


@router_scoped.delete("/{invitationId}", status_code=204, tags=["Invitations"])
async def cancel_invitation(
    invitationId: uuid.UUID,
    ctx: OrgContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    await invitation_service.cancel_invitation(ctx.org_id, invitationId, ctx.user_id, session)
    await session.commit()
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Invitee routes
# ---------------------------------------------------------------------------
router_user = APIRouter()


@router_user.get("", response_model=InvitationListResponse, tags=["Invitations"])
async def list_my_invitations(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return InvitationListResponse(
        data=await invitation_service.list_user_invitations(user.id, session)
    )


@router_user.get("/{invitationId}", response_model=InvitationRead, tags=["Invitations"])
async def get_invitation(
    invitationId: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await invitation_service.get_user_invitation(invitationId, user, session)


@router_user.post(
    "/{invitationId}/accept", response_model=InvitationAcceptResponse, tags=["Invitations"]
)
async def accept_invitation(
    invitationId: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Accept an invitation: the membership is created in the same transaction."""
    membership = await invitation_service.accept_invitation(invitationId, user, session)
    await session.commit()
    return InvitationAcceptResponse(
        org_id=membership.org_id,
        role=Role(membership.role),
        message="Invitation accepted",
    )


@router_user.post("/{invitationId}/reject", response_model=InvitationRead, tags=["Invitations"])
async def reject_invitation(
    invitationId: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    invitation = await invitation_service.reject_invitation(invitationId, user, session)
    await session.commit()
    return invitation
