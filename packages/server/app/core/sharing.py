"""
Sharing consistency for notes.

``Note.is_shared`` is derived from ``Note.shared_with_roles``. Both fields are
only ever written through :func:`apply_sharing`, inside the same session as
the rest of the note write, so they cannot diverge.
"""

from __future__ import annotations

from typing import Iterable, Optional

from app.models.note import Note
from syncnotes_shared.schemas.common import ROLE_ORDER, Role


def normalize_roles(roles: Iterable[Role | str]) -> list[str]:
    """De-duplicate and order roles canonically (ADMIN, MEMBER, VIEWER)."""
    wanted = {Role(r) for r in roles}
    return [r.value for r in ROLE_ORDER if r in wanted]


def apply_sharing(
    note: Note,
    requested: Optional[Iterable[Role | str]],
    *,
    allowed: bool,
) -> bool:
    """Write the requested sharing onto ``note`` if the caller may set it.

    ``requested=None`` means the caller did not touch sharing. When the
    caller lacks the capability the existing values are kept as-is, and the
    pair is re-derived either way. Returns True if sharing changed.
    """
    before = list(note.shared_with_roles or [])
    if requested is not None and allowed:
        note.shared_with_roles = normalize_roles(requested)
    else:
        note.shared_with_roles = normalize_roles(before)
    note.is_shared = len(note.shared_with_roles) > 0
    return note.shared_with_roles != before
