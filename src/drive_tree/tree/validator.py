"""Descendant-closure validation of folder move destinations."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from drive_tree.errors import MoveRejected, RejectReason
from drive_tree.tree.index import FolderIndex

if TYPE_CHECKING:
    from drive_tree.store.models import Folder


class EntityKind(str, Enum):
    FOLDER = "folder"
    FILE = "file"


@dataclass(frozen=True)
class MoveCandidate:
    """What the user is trying to relocate.

    Attributes:
        kind: Folder or file.
        id: Identifier of the subject.
        name: Display name of the subject.
        parent_id: Current parent folder of the subject, None for root.
    """

    kind: EntityKind
    id: str
    name: str
    parent_id: str | None = None


class _Unknown:
    def __repr__(self) -> str:
        return "UNKNOWN_PARENT"


UNKNOWN_PARENT = _Unknown()


@dataclass(frozen=True)
class ForbiddenSet:
    """Folder ids that must never become the new parent of ``subject_id``.

    Attributes:
        subject_id: The folder being moved.
        ids: ``subject_id`` plus every known descendant.
        current_parent_id: The subject's current parent (None for root), or
            UNKNOWN_PARENT when it could not be determined.
    """

    subject_id: str
    ids: frozenset[str]
    current_parent_id: str | None | _Unknown = UNKNOWN_PARENT

    def __contains__(self, folder_id: object) -> bool:
        return folder_id in self.ids

    def __len__(self) -> int:
        return len(self.ids)

    def is_unchanged(self, proposed_parent_id: str | None) -> bool:
        return (
            self.current_parent_id is not UNKNOWN_PARENT
            and proposed_parent_id == self.current_parent_id
        )


def compute_forbidden_set(
    subject_id: str,
    folders: Iterable[Folder],
    current_parent_id: str | None | _Unknown = UNKNOWN_PARENT,
) -> ForbiddenSet:
    """Compute the descendant closure of ``subject_id``.

    Args:
        subject_id: Identifier of the folder being moved.
        folders: Known folders (may be partial in degraded mode).
        current_parent_id: The subject's current parent. When omitted it is
            looked up from ``folders``.

    Returns:
        ForbiddenSet containing the subject and all its reachable children.
        Terminates on cyclic input.
    """
    index = FolderIndex(folders)
    ids = {subject_id}
    ids.update(folder.id for folder in index.iter_descendants(subject_id))

    if current_parent_id is UNKNOWN_PARENT:
        subject = index.get(subject_id)
        if subject is not None:
            current_parent_id = subject.parent_id

    return ForbiddenSet(
        subject_id=subject_id,
        ids=frozenset(ids),
        current_parent_id=current_parent_id,
    )


def is_valid_destination(forbidden: ForbiddenSet, proposed_parent_id: str | None) -> bool:
    """Return whether ``proposed_parent_id`` is an acceptable new parent.

    False for the subject, its descendants and its current parent (a no-op
    move). Root (None) is valid unless the subject is already at root.
    """
    if proposed_parent_id is not None and proposed_parent_id in forbidden:
        return False
    return not forbidden.is_unchanged(proposed_parent_id)


def validate_move(
    candidate: MoveCandidate,
    destination_id: str | None,
    forbidden: ForbiddenSet | None = None,
) -> None:
    """Reject a move client-side before it reaches the store.

    Files are checked against the unchanged-destination rule only; folders
    are also checked against ``forbidden`` (a subject-only set when omitted).

    Raises:
        MoveRejected: With reason UNCHANGED or FORBIDDEN.
    """
    if destination_id == candidate.parent_id:
        raise MoveRejected(RejectReason.UNCHANGED, candidate.id, destination_id)
    if candidate.kind is not EntityKind.FOLDER:
        return
    if forbidden is None:
        forbidden = ForbiddenSet(
            subject_id=candidate.id,
            ids=frozenset({candidate.id}),
            current_parent_id=candidate.parent_id,
        )
    if destination_id is not None and destination_id in forbidden:
        raise MoveRejected(RejectReason.FORBIDDEN, candidate.id, destination_id)
