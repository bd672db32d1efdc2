"""Exception hierarchy shared by the store client and the tree engine."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from drive_tree.tree.upload import UploadResult


class DriveTreeError(Exception):
    """Base class for all drive_tree errors."""


class StoreAuthError(DriveTreeError):
    """Raised when MSAL token acquisition for the store API fails."""


class StoreApiError(DriveTreeError):
    """Raised when the store API returns a non-2xx response or is unreachable.

    Attributes:
        status_code: HTTP status code, or 0 when no response was received.
        message: Error detail reported by the store.
        operation: Name of the store operation that failed (e.g. "create_folder").
        path: Upload path the failure is attributed to, when known: the file
            for an upload failure, the folder for a folder-resolution failure.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        operation: str = "",
        path: str | None = None,
    ) -> None:
        prefix = f"{operation}: " if operation else ""
        super().__init__(f"{prefix}store API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.operation = operation
        self.path = path


class RejectReason(str, Enum):
    """Why a proposed move destination was refused client-side."""

    FORBIDDEN = "forbidden"
    UNCHANGED = "unchanged"


class MoveRejected(DriveTreeError):
    """Raised when a move destination fails client-side validation.

    Never sent to the store. ``UNCHANGED`` means the move is a no-op rather
    than an invalid destination.
    """

    def __init__(self, reason: RejectReason, subject_id: str, destination_id: str | None) -> None:
        if reason is RejectReason.FORBIDDEN:
            detail = "cannot move a folder into itself or its descendants"
        else:
            detail = "destination is the current parent"
        super().__init__(f"move of {subject_id} to {destination_id or 'root'} rejected: {detail}")
        self.reason = reason
        self.subject_id = subject_id
        self.destination_id = destination_id


class CycleDetectedError(DriveTreeError):
    """Raised when the store rejects a folder move the client considered valid."""

    def __init__(self, subject_id: str, destination_id: str | None, detail: str) -> None:
        super().__init__(
            f"store rejected move of {subject_id} to {destination_id or 'root'}: {detail}"
        )
        self.subject_id = subject_id
        self.destination_id = destination_id
        self.detail = detail


class PartialUploadFailure(DriveTreeError):
    """Raised when at least one entry of an upload batch failed.

    Already created folders and uploaded files are not rolled back.
    """

    def __init__(self, result: UploadResult) -> None:
        first = result.first_failed_path
        super().__init__(
            f"folder upload failed for {len(result.failures)} of {result.total} file(s); "
            f"first failed path: {first}"
        )
        self.result = result

    @property
    def first_failed_path(self) -> str | None:
        return self.result.first_failed_path


class UploadCancelled(DriveTreeError):
    """Raised when an upload batch is cancelled between entries."""

    def __init__(self, result: UploadResult) -> None:
        super().__init__(f"folder upload cancelled after {result.processed} of {result.total} file(s)")
        self.result = result
