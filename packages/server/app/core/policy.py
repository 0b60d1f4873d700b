"""
Note access policy.

Every entry point that reads or writes notes asks this module, and nothing
else, whether the acting user may do so. Decisions are pure functions of
(role, note, acting user id): no I/O, no exceptions. ``role`` is ``None``
when the acting user has no membership in the note's organization.

    Operation     ADMIN      MEMBER        VIEWER                    none
    view          any note   any note      shared with VIEWER only   deny
    create        yes        yes           no                        deny
    edit/delete   any note   own notes     no                        deny
    set sharing   any note   own notes     no                        deny

Callers turn a ``False`` into ``NotAuthorized`` at the API boundary.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Optional, Protocol, Sequence

from syncnotes_shared.schemas.common import Role


class NoteLike(Protocol):
    created_by_id: uuid.UUID
    is_shared: bool
    shared_with_roles: Sequence[str]


class NoteAction(str, Enum):
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    SHARE = "share"


def parse_role(value: Optional[str]) -> Optional[Role]:
    """Parse a stored role string; unknown values grant nothing."""
    if value is None:
        return None
    try:
        return Role(value)
    except ValueError:
        return None


def _is_owner(note: NoteLike, user_id: uuid.UUID) -> bool:
    return note.created_by_id == user_id


def can_view(role: Optional[Role], note: NoteLike, user_id: uuid.UUID) -> bool:
    if role is None:
        return False
    if role is Role.ADMIN or role is Role.MEMBER:
        return True
    if role is Role.VIEWER:
        return bool(note.is_shared) and Role.VIEWER.value in note.shared_with_roles
    return False


def can_create(role: Optional[Role]) -> bool:
    return role is Role.ADMIN or role is Role.MEMBER


def can_edit(role: Optional[Role], note: NoteLike, user_id: uuid.UUID) -> bool:
    if role is Role.ADMIN:
        return True
    if role is Role.MEMBER:
        return _is_owner(note, user_id)
    return False


def can_delete(role: Optional[Role], note: NoteLike, user_id: uuid.UUID) -> bool:
    if role is Role.ADMIN:
        return True
    if role is Role.MEMBER:
        return _is_owner(note, user_id)
    return False


def can_set_sharing(role: Optional[Role], note: NoteLike, user_id: uuid.UUID) -> bool:
    if role is Role.ADMIN:
        return True
    if role is Role.MEMBER:
        return _is_owner(note, user_id)
    return False


class NotePolicy:
    """Injectable bundle of the decision functions.

    Services take a policy instance so tests (or a future alternative
    policy) can substitute it without touching call sites.
    """

    def can_view(self, role: Optional[Role], note: NoteLike, user_id: uuid.UUID) -> bool:
        return can_view(role, note, user_id)

    def can_create(self, role: Optional[Role]) -> bool:
        return can_create(role)

    def can_edit(self, role: Optional[Role], note: NoteLike, user_id: uuid.UUID) -> bool:
        return can_edit(role, note, user_id)

    def can_delete(self, role: Optional[Role], note: NoteLike, user_id: uuid.UUID) -> bool:
        return can_delete(role, note, user_id)

    def can_set_sharing(self, role: Optional[Role], note: NoteLike, user_id: uuid.UUID) -> bool:
        return can_set_sharing(role, note, user_id)

    def is_allowed(
        self,
        action: NoteAction,
        role: Optional[Role],
        note: Optional[NoteLike],
        user_id: uuid.UUID,
    ) -> bool:
        """Dispatch an enumerated action. ``note`` may be None only for CREATE."""
        if action is NoteAction.CREATE:
            return self.can_create(role)
        if note is None:
            return False
        checks = {
            NoteAction.VIEW: self.can_view,
            NoteAction.EDIT: self.can_edit,
            NoteAction.DELETE: self.can_delete,
            NoteAction.SHARE: self.can_set_sharing,
        }
        return checks[action](role, note, user_id)


DEFAULT_POLICY = NotePolicy()


def get_note_policy() -> NotePolicy:
    """FastAPI dependency returning the active note policy."""
    return DEFAULT_POLICY
