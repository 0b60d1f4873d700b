"""
Invitation service — invite by email, cancel, accept and reject.

Inviting an unknown email creates a placeholder user (no password, not
verified) that the invitee later claims by registering. ``EXPIRED`` is never
stored: a PENDING invitation past ``expires_at`` reads as expired.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlmodel import select

from app.core.auth import get_membership
from app.core.config import get_settings
from app.core.email import EmailSender, invitation_email
from app.core.errors import Conflict, NotAuthorized, NotFound
from app.models.base import as_utc, utcnow
from app.models.invitation import Invitation
from app.models.membership import Membership
from app.models.organization import Organization
from app.models.user import User
from app.services import activity
from app.services.otp import get_user_by_email
from syncnotes_shared.schemas.common import InvitationStatus, Role, UserSummary
from syncnotes_shared.schemas.invitations import (
    InvitationCreate,
    InvitationRead,
    OrgSummary,
)

log = structlog.get_logger()

Inviter = aliased(User)
Invitee = aliased(User)


def effective_status(invitation: Invitation, now: Optional[datetime] = None) -> InvitationStatus:
    status = InvitationStatus(invitation.status)
    if status is InvitationStatus.PENDING and (now or utcnow()) > as_utc(invitation.expires_at):
        return InvitationStatus.EXPIRED
    return status


def _to_read(
    invitation: Invitation, org: Organization, inviter: User, invitee: User
) -> InvitationRead:
    return InvitationRead(
        id=invitation.id,
        organization=OrgSummary(id=org.id, name=org.name),
        invited_by=UserSummary.model_validate(inviter),
        invited_user=UserSummary.model_validate(invitee),
        role=Role(invitation.role),
        status=effective_status(invitation),
        is_registered=invitee.password_hash is not None,
        expires_at=invitation.expires_at,
        created_at=invitation.created_at,
    )


def _joined_query():
    return (
        select(Invitation, Organization, Inviter, Invitee)
        .join(Organization, Organization.id == Invitation.org_id)
        .join(Inviter, Inviter.id == Invitation.invited_by_id)
        .join(Invitee, Invitee.id == Invitation.invited_user_id)
    )


async def invite(
    org: Organization,
    req: InvitationCreate,
    inviter: User,
    sender: EmailSender,
    session: AsyncSession,
) -> InvitationRead:
    settings = get_settings()
    email = req.email.lower()

    invitee = await get_user_by_email(email, session)
    if invitee is None:
        invitee = User(email=email)
        session.add(invitee)
        await session.flush()
        log.info("user.placeholder_created", user_id=str(invitee.id))
    elif await get_membership(org.id, invitee.id, session):
        raise Conflict("User is already a member of this organization")

    now = utcnow()
    result = await session.execute(
        select(Invitation).where(
            Invitation.org_id == org.id,
            Invitation.invited_user_id == invitee.id,
            Invitation.status == InvitationStatus.PENDING.value,
        )
    )
    for pending in result.scalars().all():
        if effective_status(pending, now) is InvitationStatus.PENDING:
            raise Conflict("An invitation is already pending for this email")

    invitation = Invitation(
        org_id=org.id,
        invited_by_id=inviter.id,
        invited_user_id=invitee.id,
        role=req.role.value,
        status=InvitationStatus.PENDING.value,
        expires_at=now + timedelta(days=settings.invitation_expire_days),
    )
    session.add(invitation)
    await session.flush()

    await sender.send(
        invitation_email(
            to=invitee.email,
            org_name=org.name,
            inviter=inviter.name or inviter.email,
            role=req.role.value,
            invite_url=f"{settings.app_url.rstrip('/')}/invitations/{invitation.id}",
            needs_account=invitee.password_hash is None,
            days=settings.invitation_expire_days,
        )
    )

    await activity.record_activity(
        session,
        org.id,
        inviter.id,
        activity.INVITATION_SENT,
        f"Invited {invitee.email} as {req.role.value}",
    )
    log.info(
        "invitation.sent",
        org_id=str(org.id),
        invitation_id=str(invitation.id),
        role=req.role.value,
    )
    return _to_read(invitation, org, inviter, invitee)


async def list_org_invitations(
    org_id: uuid.UUID, session: AsyncSession
) -> list[InvitationRead]:
    result = await session.execute(
        _joined_query()
        .where(Invitation.org_id == org_id)
        .order_by(Invitation.created_at.desc())
    )
    return [_to_read(*row) for row in result.all()]


async def cancel_invitation(
    org_id: uuid.UUID,
    invitation_id: uuid.UUID,
    actor_id: uuid.UUID,
    session: AsyncSession,
) -> None:
    result = await session.execute(
        _joined_query().where(Invitation.org_id == org_id, Invitation.id == invitation_id)
    )
    row = result.one_or_none()
    if not row:
        raise NotFound("Invitation not found")
    invitation, _org, _inviter, invitee = row

    await session.delete(invitation)
    await session.flush()

    await activity.record_activity(
        session,
        org_id,
        actor_id,
        activity.INVITATION_CANCELLED,
        f"Cancelled invitation for {invitee.email}",
    )
    log.info("invitation.cancelled", org_id=str(org_id), invitation_id=str(invitation_id))


async def list_user_invitations(
    user_id: uuid.UUID, session: AsyncSession
) -> list[InvitationRead]:
    result = await session.execute(
        _joined_query()
        .where(Invitation.invited_user_id == user_id)
        .order_by(Invitation.created_at.desc())
    )
    return [_to_read(*row) for row in result.all()]


async def _load_for_invitee(
    invitation_id: uuid.UUID, user: User, session: AsyncSession
) -> tuple[Invitation, Organization, User, User]:
    result = await session.execute(_joined_query().where(Invitation.id == invitation_id))
    row = result.one_or_none()
    if not row:
        raise NotFound("Invitation not found")
    invitation = row[0]
    if invitation.invited_user_id != user.id:
        raise NotAuthorized("This invitation was sent to someone else")
    return row[0], row[1], row[2], row[3]


def _ensure_actionable(invitation: Invitation) -> None:
    status = effective_status(invitation)
    if status is InvitationStatus.EXPIRED:
        raise Conflict("Invitation has expired")
    if status is not InvitationStatus.PENDING:
        raise Conflict(f"Invitation has already been {status.value.lower()}")


async def get_user_invitation(
    invitation_id: uuid.UUID, user: User, session: AsyncSession
) -> InvitationRead:
    return _to_read(*await _load_for_invitee(invitation_id, user, session))


async def accept_invitation(
    invitation_id: uuid.UUID, user: User, session: AsyncSession
) -> Membership:
    """Create the membership and mark the invitation ACCEPTED together."""
    invitation, org, _inviter, _invitee = await _load_for_invitee(invitation_id, user, session)
    _ensure_actionable(invitation)

    if await get_membership(org.id, user.id, session):
        raise Conflict("You are already a member of this organization")

    membership = Membership(org_id=org.id, user_id=user.id, role=invitation.role)
    session.add(membership)

    invitation.status = InvitationStatus.ACCEPTED.value
    invitation.updated_at = utcnow()
    session.add(invitation)
    await session.flush()

    await activity.record_activity(
        session,
        org.id,
        user.id,
        activity.INVITATION_ACCEPTED,
        f"{user.email} joined as {invitation.role}",
    )
    log.info(
        "invitation.accepted",
        org_id=str(org.id),
        invitation_id=str(invitation.id),
        user_id=str(user.id),
    )
    return membership


async def reject_invitation(
    invitation_id: uuid.UUID, user: User, session: AsyncSession
) -> InvitationRead:
    invitation, org, inviter, invitee = await _load_for_invitee(invitation_id, user, session)
    _ensure_actionable(invitation)

    invitation.status = InvitationStatus.REJECTED.value
    invitation.updated_at = utcnow()
    session.add(invitation)
    await session.flush()

    log.info("invitation.rejected", org_id=str(org.id), invitation_id=str(invitation.id))
    return _to_read(invitation, org, inviter, invitee)
