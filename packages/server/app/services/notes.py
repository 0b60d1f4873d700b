"""
Note service — note CRUD and edit history.

Every decision about who may see or change a note goes through the injected
``NotePolicy``; every write to a note's sharing goes through
``apply_sharing``.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotAuthorized, NotFound
from app.core.policy import NoteAction, NotePolicy
from app.core.sharing import apply_sharing
from app.models.base import utcnow
from app.models.note import Note, NoteEdit
from app.models.user import User
from app.services import activity
from syncnotes_shared.schemas.common import Role, UserSummary
from syncnotes_shared.schemas.notes import (
    NoteCreate,
    NoteDetail,
    NoteEditRead,
    NoteRead,
    NoteUpdate,
)

log = structlog.get_logger()


def to_note_read(
    note: Note,
    creator: User,
    role: Optional[Role],
    user_id: uuid.UUID,
    policy: NotePolicy,
) -> NoteRead:
    return NoteRead(
        id=note.id,
        org_id=note.org_id,
        title=note.title,
        content=note.content,
        created_by=UserSummary.model_validate(creator),
        is_shared=note.is_shared,
        shared_with_roles=list(note.shared_with_roles or []),
        can_edit=policy.is_allowed(NoteAction.EDIT, role, note, user_id),
        can_delete=policy.is_allowed(NoteAction.DELETE, role, note, user_id),
        can_share=policy.is_allowed(NoteAction.SHARE, role, note, user_id),
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


async def _load_note(
    org_id: uuid.UUID, note_id: uuid.UUID, session: AsyncSession
) -> tuple[Note, User]:
    result = await session.execute(
        select(Note, User)
        .join(User, User.id == Note.created_by_id)
        .where(Note.org_id == org_id, Note.id == note_id)
    )
    row = result.one_or_none()
    if not row:
        raise NotFound("Note not found")
    return row[0], row[1]


async def list_notes(
    org_id: uuid.UUID,
    role: Optional[Role],
    user_id: uuid.UUID,
    policy: NotePolicy,
    session: AsyncSession,
) -> list[NoteRead]:
    """Notes of the org the caller may view, most recently updated first."""
    result = await session.execute(
        select(Note, User)
        .join(User, User.id == Note.created_by_id)
        .where(Note.org_id == org_id)
        .order_by(Note.updated_at.desc())
    )
    return [
        to_note_read(note, creator, role, user_id, policy)
        for note, creator in result.all()
        if policy.is_allowed(NoteAction.VIEW, role, note, user_id)
    ]


async def create_note(
    org_id: uuid.UUID,
    req: NoteCreate,
    user: User,
    role: Optional[Role],
    policy: NotePolicy,
    session: AsyncSession,
) -> NoteRead:
    if not policy.is_allowed(NoteAction.CREATE, role, None, user.id):
        raise NotAuthorized("You don't have permission to create notes")

    note = Note(
        org_id=org_id,
        title=req.title,
        content=req.content,
        created_by_id=user.id,
    )
    # The creator owns the note, so the caller may always set its sharing here
    apply_sharing(
        note,
        req.shared_with_roles,
        allowed=policy.is_allowed(NoteAction.SHARE, role, note, user.id),
    )
    session.add(note)
    await session.flush()

    await activity.record_activity(
        session, org_id, user.id, activity.NOTE_CREATED, f"Created note: {note.title}"
    )
    log.info("note.created", org_id=str(org_id), note_id=str(note.id), shared=note.is_shared)
    return to_note_read(note, user, role, user.id, policy)


async def list_history(note_id: uuid.UUID, session: AsyncSession) -> list[NoteEditRead]:
    """Edit snapshots, newest first."""
    result = await session.execute(
        select(NoteEdit, User)
        .join(User, User.id == NoteEdit.edited_by_id)
        .where(NoteEdit.note_id == note_id)
        .order_by(NoteEdit.edited_at.desc())
    )
    return [
        NoteEditRead(
            id=edit.id,
            title=edit.title,
            content=edit.content,
            edited_by=UserSummary.model_validate(editor),
            edited_at=edit.edited_at,
        )
        for edit, editor in result.all()
    ]


async def get_viewable_note(
    org_id: uuid.UUID,
    note_id: uuid.UUID,
    role: Optional[Role],
    user_id: uuid.UUID,
    policy: NotePolicy,
    session: AsyncSession,
) -> tuple[Note, User]:
    note, creator = await _load_note(org_id, note_id, session)
    if not policy.is_allowed(NoteAction.VIEW, role, note, user_id):
        raise NotAuthorized("You don't have permission to view this note")
    return note, creator


async def get_note_detail(
    org_id: uuid.UUID,
    note_id: uuid.UUID,
    role: Optional[Role],
    user_id: uuid.UUID,
    policy: NotePolicy,
    session: AsyncSession,
) -> NoteDetail:
    note, creator = await get_viewable_note(org_id, note_id, role, user_id, policy, session)
    base = to_note_read(note, creator, role, user_id, policy)
    return NoteDetail(**base.model_dump(), edit_history=await list_history(note.id, session))


async def update_note(
    org_id: uuid.UUID,
    note_id: uuid.UUID,
    req: NoteUpdate,
    user: User,
    role: Optional[Role],
    policy: NotePolicy,
    session: AsyncSession,
) -> NoteRead:
    """Apply a partial update. When the title or content changes, the version
    being replaced is kept as a history snapshot."""
    note, creator = await _load_note(org_id, note_id, session)
    if not policy.is_allowed(NoteAction.EDIT, role, note, user.id):
        raise NotAuthorized("You don't have permission to edit this note")

    previous_title, previous_content = note.title, note.content
    text_changed = False
    if req.title is not None and req.title != note.title:
        note.title = req.title
        text_changed = True
    if req.content is not None and req.content != note.content:
        note.content = req.content
        text_changed = True

    # Without the sharing capability, existing sharing is kept unchanged
    sharing_changed = apply_sharing(
        note,
        req.shared_with_roles,
        allowed=policy.is_allowed(NoteAction.SHARE, role, note, user.id),
    )

    if text_changed or sharing_changed:
        note.updated_at = utcnow()
    session.add(note)

    if text_changed:
        session.add(
            NoteEdit(
                note_id=note.id,
                edited_by_id=user.id,
                title=previous_title,
                content=previous_content,
            )
        )
    await session.flush()

    if text_changed or sharing_changed:
        await activity.record_activity(
            session, org_id, user.id, activity.NOTE_UPDATED, f"Updated note: {note.title}"
        )
    log.info(
        "note.updated",
        org_id=str(org_id),
        note_id=str(note.id),
        text_changed=text_changed,
        sharing_changed=sharing_changed,
    )
    return to_note_read(note, creator, role, user.id, policy)


async def delete_note(
    org_id: uuid.UUID,
    note_id: uuid.UUID,
    user: User,
    role: Optional[Role],
    policy: NotePolicy,
    session: AsyncSession,
) -> None:
    note, _creator = await _load_note(org_id, note_id, session)
    if not policy.is_allowed(NoteAction.DELETE, role, note, user.id):
        raise NotAuthorized("You don't have permission to delete this note")

    title = note.title
    await session.execute(delete(NoteEdit).where(NoteEdit.note_id == note.id))
    await session.delete(note)
    await session.flush()

    await activity.record_activity(
        session, org_id, user.id, activity.NOTE_DELETED, f"Deleted note: {title}"
    )
    log.info("note.deleted", org_id=str(org_id), note_id=str(note_id))
