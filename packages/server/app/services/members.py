"""
Membership service — member listing, role changes and removal.

Every organization keeps at least one ADMIN: a removal or role change that
would leave it without one is refused with ``InvariantViolation``.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import InvariantViolation, NotAuthorized, NotFound
from app.models.membership import Membership
from app.models.user import User
from app.services import activity
from syncnotes_shared.schemas.common import Role, UserSummary
from syncnotes_shared.schemas.organizations import MemberResponse

log = structlog.get_logger()


def _to_response(membership: Membership, user: User) -> MemberResponse:
    return MemberResponse(
        id=membership.id,
        user=UserSummary.model_validate(user),
        role=Role(membership.role),
        joined_at=membership.joined_at,
    )


async def list_members(org_id: uuid.UUID, session: AsyncSession) -> list[MemberResponse]:
    result = await session.execute(
        select(Membership, User)
        .join(User, User.id == Membership.user_id)
        .where(Membership.org_id == org_id)
        .order_by(Membership.joined_at)
    )
    return [_to_response(m, u) for m, u in result.all()]


async def count_admins(org_id: uuid.UUID, session: AsyncSession) -> int:
    result = await session.execute(
        select(func.count(Membership.id)).where(
            Membership.org_id == org_id, Membership.role == Role.ADMIN.value
        )
    )
    return result.scalar_one()


async def _get_member(
    org_id: uuid.UUID, member_id: uuid.UUID, session: AsyncSession
) -> tuple[Membership, User]:
    result = await session.execute(
        select(Membership, User)
        .join(User, User.id == Membership.user_id)
        .where(Membership.org_id == org_id, Membership.id == member_id)
    )
    row = result.one_or_none()
    if not row:
        raise NotFound("Member not found")
    return row[0], row[1]


async def _ensure_admin_remains(membership: Membership, session: AsyncSession) -> None:
    """Refuse to take away the organization's last ADMIN."""
    if membership.role != Role.ADMIN.value:
        return
    if await count_admins(membership.org_id, session) <= 1:
        raise InvariantViolation("Organization must have at least one admin")


async def change_role(
    org_id: uuid.UUID,
    member_id: uuid.UUID,
    new_role: Role,
    actor_id: uuid.UUID,
    session: AsyncSession,
) -> MemberResponse:
    membership, user = await _get_member(org_id, member_id, session)

    if membership.user_id == actor_id:
        raise NotAuthorized("You cannot change your own role")

    if membership.role != new_role.value:
        if new_role is not Role.ADMIN:
            await _ensure_admin_remains(membership, session)
        old_role = membership.role
        membership.role = new_role.value
        session.add(membership)
        await session.flush()

        await activity.record_activity(
            session,
            org_id,
            actor_id,
            activity.MEMBER_ROLE_UPDATED,
            f"Changed {user.email} from {old_role} to {new_role.value}",
        )
        log.info(
            "member.role_changed",
            org_id=str(org_id),
            user_id=str(user.id),
            old_role=old_role,
            new_role=new_role.value,
        )

    return _to_response(membership, user)


async def remove_member(
    org_id: uuid.UUID,
    member_id: uuid.UUID,
    actor_id: uuid.UUID,
    actor_role: Role,
    session: AsyncSession,
) -> None:
    """Admins may remove anyone; any member may remove (leave) themselves."""
    membership, user = await _get_member(org_id, member_id, session)

    is_self = membership.user_id == actor_id
    if actor_role is not Role.ADMIN and not is_self:
        raise NotAuthorized("Administrator access required")

    await _ensure_admin_remains(membership, session)

    await session.delete(membership)
    await session.flush()

    details = f"{user.email} left the organization" if is_self else f"Removed {user.email}"
    await activity.record_activity(session, org_id, actor_id, activity.MEMBER_REMOVED, details)
    log.info("member.removed", org_id=str(org_id), user_id=str(user.id), by_self=is_self)
