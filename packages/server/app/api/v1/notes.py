"""
Note API endpoints.

GET    /api/v1/orgs/{orgId}/notes                    — List notes visible to the caller
POST   /api/v1/orgs/{orgId}/notes                    — Create a note
GET    /api/v1/orgs/{orgId}/notes/{noteId}           — Get a note with its edit history
PATCH  /api/v1/orgs/{orgId}/notes/{noteId}           — Update title/content/sharing
DELETE /api/v1/orgs/{orgId}/notes/{noteId}           — Delete a note
GET    /api/v1/orgs/{orgId}/notes/{noteId}/history   — Edit history, newest first
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import OrgContext, require_member
from app.core.database import get_session
from app.core.policy import NotePolicy, get_note_policy
from app.services import notes as note_service
from syncnotes_shared.schemas.notes import (
    NoteCreate,
    NoteDetail,
    NoteHistoryResponse,
    NoteListResponse,
    NoteRead,
    NoteUpdate,
)

router = APIRouter()


@router.get("", response_model=NoteListResponse, tags=["Notes"])
async def list_notes(
    ctx: OrgContext = Depends(require_member),
    policy: NotePolicy = Depends(get_note_policy),
    session: AsyncSession = Depends(get_session),
):
    notes = await note_service.list_notes(ctx.org_id, ctx.role, ctx.user_id, policy, session)
    return NoteListResponse(data=notes)


@router.post("", response_model=NoteRead, status_code=201, tags=["Notes"])
async def create_note(
    body: NoteCreate,
    ctx: OrgContext = Depends(require_member),
    policy: NotePolicy = Depends(get_note_policy),
    session: AsyncSession = Depends(get_session),
):
    """Create a note (Admin and Member)."""
    note = await note_service.create_note(ctx.org_id, body, ctx.user, ctx.role, policy, session)
    await session.commit()
    return note


@router.get("/{noteId}", response_model=NoteDetail, tags=["Notes"])
async def get_note(
    noteId: uuid.UUID,
    ctx: OrgContext = Depends(require_member),
    policy: NotePolicy = Depends(get_note_policy),
    session: AsyncSession = Depends(get_session),
):
    return await note_service.get_note_detail(
        ctx.org_id, noteId, ctx.role, ctx.user_id, policy, session
    )


@router.patch("/{noteId}", response_model=NoteRead, tags=["Notes"])
async def update_note(
    noteId: uuid.UUID,
    body: NoteUpdate,
    ctx: OrgContext = Depends(require_member),
    policy: NotePolicy = Depends(get_note_policy),
    session: AsyncSession = Depends(get_session),
):
    """Update a note. Sharing changes are ignored unless the caller may share it."""
    note = await note_service.update_note(
        ctx.org_id, noteId, body, ctx.user, ctx.role, policy, session
    )
    await session.commit()
    return note


@router.delete("/{noteId}", status_code=204, tags=["Notes"])
async def delete_note(
    noteId: uuid.UUID,
    ctx: OrgContext = Depends(require_member),
    policy: NotePolicy = Depends(get_note_policy),
    session: AsyncSession = Depends(get_session),
):
    await note_service.delete_note(ctx.org_id, noteId, ctx.user, ctx.role, policy, session)
    await session.commit()
    return Response(status_code=204)


@router.get("/{noteId}/history", response_model=NoteHistoryResponse, tags=["Notes"])
async def get_note_history(
    noteId: uuid.UUID,
    ctx: OrgContext = Depends(require_member),
    policy: NotePolicy = Depends(get_note_policy),
    session: AsyncSession = Depends(get_session),
):
    note, _creator = await note_service.get_viewable_note(
        ctx.org_id, noteId, ctx.role, ctx.user_id, policy, session
    )
    return NoteHistoryResponse(data=await note_service.list_history(note.id, session))
