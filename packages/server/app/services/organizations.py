"""
Organization service — business logic for org CRUD.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.activity_log import ActivityLog
from app.models.base import utcnow
from app.models.invitation import Invitation
from app.models.membership import Membership
from app.models.note import Note, NoteEdit
from app.models.organization import Organization
from app.services import activity
from app.services.members import list_members
from syncnotes_shared.schemas.common import Role
from syncnotes_shared.schemas.organizations import (
    OrgCreateRequest,
    OrgListItem,
    OrgResponse,
    OrgUpdateRequest,
)

log = structlog.get_logger()


async def list_user_orgs(
    user_id: uuid.UUID, session: AsyncSession
) -> list[OrgListItem]:
    """List all orgs a user belongs to, with their role and member count."""
    member_count = (
        select(func.count(Membership.id))
        .where(Membership.org_id == Organization.id)
        .correlate(Organization)
        .scalar_subquery()
    )
    result = await session.execute(
        select(Organization, Membership.role, member_count)
        .join(Membership, Membership.org_id == Organization.id)
        .where(Membership.user_id == user_id)
        .order_by(Organization.created_at.desc())
    )
    return [
        OrgListItem(
            id=org.id,
            name=org.name,
            description=org.description,
            role=Role(role),
            member_count=count,
            created_at=org.created_at,
        )
        for org, role, count in result.all()
    ]


async def create_org(
    req: OrgCreateRequest,
    creator_id: uuid.UUID,
    session: AsyncSession,
) -> Organization:
    """Create an org and make the creator an administrator."""
    org = Organization(name=req.name, description=req.description)
    session.add(org)
    await session.flush()

    membership = Membership(org_id=org.id, user_id=creator_id, role=Role.ADMIN.value)
    session.add(membership)
    await session.flush()

    await activity.record_activity(
        session, org.id, creator_id, activity.ORG_CREATED, f"Created organization: {org.name}"
    )
    log.info("org.created", org_id=str(org.id), creator=str(creator_id))
    return org


async def get_org_detail(
    org: Organization, role: Role, session: AsyncSession
) -> OrgResponse:
    return OrgResponse(
        id=org.id,
        name=org.name,
        description=org.description,
        role=role,
        members=await list_members(org.id, session),
        created_at=org.created_at,
        updated_at=org.updated_at,
    )


async def update_org(
    org: Organization,
    req: OrgUpdateRequest,
    actor_id: uuid.UUID,
    session: AsyncSession,
) -> Organization:
    """Update org name and/or description."""
    changed = []
    if req.name is not None and req.name != org.name:
        org.name = req.name
        changed.append("name")
    if "description" in req.model_fields_set and req.description != org.description:
        org.description = req.description
        changed.append("description")

    if changed:
        org.updated_at = utcnow()
        session.add(org)
        await session.flush()
        await activity.record_activity(
            session,
            org.id,
            actor_id,
            activity.ORG_UPDATED,
            f"Updated organization {', '.join(changed)}",
        )

    log.info("org.updated", org_id=str(org.id), fields=changed)
    return org


async def delete_org(org: Organization, session: AsyncSession) -> None:
    """Delete an org together with everything it owns."""
    org_id = org.id
    note_ids = select(Note.id).where(Note.org_id == org_id)

    await session.execute(delete(NoteEdit).where(NoteEdit.note_id.in_(note_ids)))
    await session.execute(delete(Note).where(Note.org_id == org_id))
    await session.execute(delete(Invitation).where(Invitation.org_id == org_id))
    await session.execute(delete(ActivityLog).where(ActivityLog.org_id == org_id))
    await session.execute(delete(Membership).where(Membership.org_id == org_id))
    await session.delete(org)
    await session.flush()

    log.info("org.deleted", org_id=str(org_id))
