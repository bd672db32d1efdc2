"""Data models for folder and file records returned by the store API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Store JSON field names
FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_PARENT_ID = "parent_id"
FIELD_FOLDER_ID = "folder_id"
FIELD_MIME = "mime"
FIELD_SIZE = "size"
FIELD_CREATED_AT = "created_at"
FIELD_DELETED_AT = "deleted_at"

# Response envelope keys
KEY_FOLDER = "folder"
KEY_FOLDERS = "folders"
KEY_FILE = "file"
KEY_FILES = "files"
KEY_URL = "url"


def _optional_id(value: Any) -> str | None:
    """Normalise a parent reference: empty values mean root."""
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class Folder:
    """Read-only snapshot of a folder owned by the store.

    Attributes:
        id: Opaque, server-assigned identifier.
        name: Display name; not guaranteed unique among siblings.
        parent_id: Identifier of the parent folder, or None for root.
        created_at: ISO timestamp string as sent by the store.
        deleted_at: ISO timestamp of the soft delete, or None.
    """

    id: str
    name: str
    parent_id: str | None = None
    created_at: str | None = None
    deleted_at: str | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> Folder:
        """Map a raw store folder dict to a Folder."""
        return cls(
            id=str(raw[FIELD_ID]),
            name=raw.get(FIELD_NAME, ""),
            parent_id=_optional_id(raw.get(FIELD_PARENT_ID)),
            created_at=raw.get(FIELD_CREATED_AT),
            deleted_at=raw.get(FIELD_DELETED_AT),
        )


@dataclass(frozen=True)
class StoredFile:
    """Read-only snapshot of a file owned by the store."""

    id: str
    name: str
    mime: str = ""
    size: int = 0
    folder_id: str | None = None
    created_at: str | None = None
    deleted_at: str | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> StoredFile:
        """Map a raw store file dict to a StoredFile."""
        return cls(
            id=str(raw[FIELD_ID]),
            name=raw.get(FIELD_NAME, ""),
            mime=raw.get(FIELD_MIME) or "",
            size=int(raw.get(FIELD_SIZE) or 0),
            folder_id=_optional_id(raw.get(FIELD_FOLDER_ID)),
            created_at=raw.get(FIELD_CREATED_AT),
            deleted_at=raw.get(FIELD_DELETED_AT),
        )


@dataclass(frozen=True)
class TrashListing:
    """Soft-deleted folders and files as reported by the store."""

    folders: tuple[Folder, ...] = ()
    files: tuple[StoredFile, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.folders and not self.files
