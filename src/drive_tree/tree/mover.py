"""Validated folder and file moves against the store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from drive_tree.errors import CycleDetectedError, StoreApiError
from drive_tree.store.api import FolderStore, folder_store_from_config
from drive_tree.tree.validator import (
    EntityKind,
    ForbiddenSet,
    MoveCandidate,
    compute_forbidden_set,
    validate_move,
)

if TYPE_CHECKING:
    from drive_tree.config import AppConfig
    from drive_tree.store.models import Folder

logger = logging.getLogger(__name__)

# Statuses with which a store refuses a structurally invalid move.
CYCLE_REJECTION_STATUSES = frozenset({400, 409, 422})


@dataclass(frozen=True)
class FolderSnapshot:
    """Folders fetched for one validation pass.

    Attributes:
        folders: Folders known to the client.
        complete: False when only the root level could be fetched (degraded
            mode); deep descendants are then not part of the closure.
    """

    folders: tuple[Folder, ...]
    complete: bool


class MoveService:
    """Validates and performs moves of folders and files."""

    def __init__(self, store: FolderStore) -> None:
        self._store = store

    def load_snapshot(self) -> FolderSnapshot:
        """Fetch the folder universe, degrading to the root level.

        Asks the store for every folder. If that request fails or comes back
        empty, lists the root level instead and marks the snapshot incomplete.
        Errors from the root-level listing propagate.
        """
        try:
            folders = self._store.list_folders(None, include_all=True)
        except StoreApiError as exc:
            logger.info(
                "[load_snapshot] full folder listing unavailable; status:%d", exc.status_code
            )
            folders = []

        if folders:
            return FolderSnapshot(folders=tuple(folders), complete=True)

        roots = self._store.list_folders(None)
        logger.warning(
            "[load_snapshot] degraded mode, validating against root level only; folder_count:%d",
            len(roots),
        )
        return FolderSnapshot(folders=tuple(roots), complete=False)

    def forbidden_for(
        self, candidate: MoveCandidate, snapshot: FolderSnapshot | None = None
    ) -> ForbiddenSet:
        """Forbidden destinations for ``candidate``.

        Files may go anywhere except their current folder, so only the
        unchanged-destination rule applies to them.
        """
        if candidate.kind is not EntityKind.FOLDER:
            return ForbiddenSet(
                subject_id=candidate.id,
                ids=frozenset(),
                current_parent_id=candidate.parent_id,
            )
        if snapshot is None:
            snapshot = self.load_snapshot()
        return compute_forbidden_set(
            candidate.id, snapshot.folders, current_parent_id=candidate.parent_id
        )

    def move(
        self,
        candidate: MoveCandidate,
        destination_id: str | None,
        forbidden: ForbiddenSet | None = None,
    ) -> None:
        """Validate then perform a move.

        Args:
            candidate: Subject of the move.
            destination_id: New parent folder id, None for root.
            forbidden: Previously computed forbidden set; computed on demand
                for folders when omitted.

        Raises:
            MoveRejected: Destination is the current parent or forbidden.
                Nothing is sent to the store.
            CycleDetectedError: The store refused a folder move that passed
                client-side validation.
            StoreApiError: Any other store failure.
        """
        if forbidden is None and candidate.kind is EntityKind.FOLDER:
            forbidden = self.forbidden_for(candidate)
        validate_move(candidate, destination_id, forbidden)

        if candidate.kind is EntityKind.FILE:
            self._store.move_file(candidate.id, destination_id)
        else:
            try:
                self._store.move_folder(candidate.id, destination_id)
            except StoreApiError as exc:
                if exc.status_code in CYCLE_REJECTION_STATUSES:
                    logger.error(
                        "[move] store rejected folder move; id:%s;destination:%s;status:%d",
                        candidate.id,
                        destination_id or "root",
                        exc.status_code,
                    )
                    raise CycleDetectedError(candidate.id, destination_id, exc.message) from exc
                raise

        logger.info(
            "[move] moved %s; id:%s;destination:%s",
            candidate.kind.value,
            candidate.id,
            destination_id or "root",
        )


def move_service_from_config(config: AppConfig) -> MoveService:
    """Construct a MoveService from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured MoveService instance.
    """
    return MoveService(folder_store_from_config(config))
