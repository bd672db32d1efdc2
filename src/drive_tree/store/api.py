"""Folder/file store operations expressed over the store API client."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import quote, urlencode

from drive_tree.errors import StoreApiError
from drive_tree.store.client import StoreClient, store_client_from_config
from drive_tree.store.models import (
    KEY_FILE,
    KEY_FILES,
    KEY_FOLDER,
    KEY_FOLDERS,
    KEY_URL,
    Folder,
    StoredFile,
    TrashListing,
)

if TYPE_CHECKING:
    from drive_tree.config import AppConfig

logger = logging.getLogger(__name__)

ROOT_SEGMENT = "root"

# Reported for 2xx replies that lack the record the operation promises.
MALFORMED_RESPONSE_STATUS = 502


def _seg(identifier: str) -> str:
    return quote(identifier, safe="")


def _malformed(operation: str, key: str) -> StoreApiError:
    logger.warning("[%s] store reply has no usable record; key:%s", operation, key)
    return StoreApiError(
        MALFORMED_RESPONSE_STATUS, f"store reply has no usable '{key}'", operation
    )


@dataclass(frozen=True)
class EmptyTrashResult:
    """Outcome of a best-effort trash sweep."""

    deleted_folders: int = 0
    deleted_files: int = 0
    failed: int = 0


class FolderStore:
    """Typed operations on the remote folder/file store.

    The store is the source of truth; every method is a single remote call
    except ``empty_trash``.
    """

    def __init__(self, client: StoreClient) -> None:
        """Initialise the store wrapper.

        Args:
            client: Authenticated StoreClient instance.
        """
        self._client = client

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    def list_folders(self, parent_id: str | None = None, include_all: bool = False) -> list[Folder]:
        """List live folders.

        Args:
            parent_id: Parent whose direct children are listed; None for root.
            include_all: Request the full folder universe instead of one level.
                Stores that do not support it answer with an error or an
                empty list.

        Returns:
            Folders as reported by the store.
        """
        params: dict[str, str] = {}
        if parent_id is not None:
            params["parent_id"] = parent_id
        if include_all:
            params["all"] = "1"
        path = "/folders"
        if params:
            path = f"{path}?{urlencode(params)}"
        response = self._client.get(path, operation="list_folders")
        return [Folder.from_json(raw) for raw in response.get(KEY_FOLDERS) or []]

    def create_folder(self, name: str, parent_id: str | None) -> Folder:
        response = self._client.post(
            "/folders", {"name": name, "parent_id": parent_id}, operation="create_folder"
        )
        try:
            folder = Folder.from_json(response[KEY_FOLDER])
        except (KeyError, TypeError, ValueError) as exc:
            raise _malformed("create_folder", KEY_FOLDER) from exc
        logger.info(
            "[create_folder] created folder; id:%s;parent_id:%s", folder.id, parent_id or "root"
        )
        return folder

    def rename_folder(self, folder_id: str, name: str) -> None:
        self._client.patch(f"/folders/{_seg(folder_id)}", {"name": name}, operation="rename_folder")

    def delete_folder(self, folder_id: str) -> None:
        """Soft-delete a folder (moves it to the trash)."""
        self._client.delete(f"/folders/{_seg(folder_id)}", operation="delete_folder")

    def move_folder(self, folder_id: str, new_parent_id: str | None) -> None:
        """Re-parent a folder. The store must reject cycle-forming moves itself."""
        self._client.patch(
            f"/folders/{_seg(folder_id)}/move",
            {"parent_id": new_parent_id},
            operation="move_folder",
        )

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def list_files(self, folder_id: str | None) -> list[StoredFile]:
        segment = ROOT_SEGMENT if folder_id is None else _seg(folder_id)
        response = self._client.get(f"/folders/{segment}/files", operation="list_files")
        return [StoredFile.from_json(raw) for raw in response.get(KEY_FILES) or []]

    def upload_file(self, content: bytes, name: str, folder_id: str | None) -> StoredFile:
        """Upload file content into a folder (None for root).

        Returns:
            The stored file record. Stores that answer without a body yield a
            record with an empty id. A record that is present but unreadable
            raises StoreApiError.
        """
        response = self._client.upload(
            "/files/upload",
            file_name=name,
            content=content,
            fields={"folder_id": folder_id or ""},
            operation="upload_file",
        )
        raw = response.get(KEY_FILE)
        if not raw:
            return StoredFile(id="", name=name, size=len(content), folder_id=folder_id)
        try:
            return StoredFile.from_json(raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise _malformed("upload_file", KEY_FILE) from exc

    def rename_file(self, file_id: str, name: str) -> None:
        self._client.patch(f"/files/{_seg(file_id)}", {"name": name}, operation="rename_file")

    def delete_file(self, file_id: str) -> None:
        """Soft-delete a file (moves it to the trash)."""
        self._client.delete(f"/files/{_seg(file_id)}", operation="delete_file")

    def move_file(self, file_id: str, new_folder_id: str | None) -> None:
        self._client.patch(
            f"/files/{_seg(file_id)}/move",
            {"folder_id": new_folder_id},
            operation="move_file",
        )

    def download_url(self, file_id: str) -> str:
        """Ask the store to issue a download URL for a file."""
        response = self._client.get(f"/files/{_seg(file_id)}/download", operation="download_url")
        url = response.get(KEY_URL)
        if not url:
            raise _malformed("download_url", KEY_URL)
        return str(url)

    # ------------------------------------------------------------------
    # Trash
    # ------------------------------------------------------------------

    def list_trash(self) -> TrashListing:
        response = self._client.get("/trash", operation="list_trash")
        return TrashListing(
            folders=tuple(Folder.from_json(raw) for raw in response.get(KEY_FOLDERS) or []),
            files=tuple(StoredFile.from_json(raw) for raw in response.get(KEY_FILES) or []),
        )

    def restore_folder(self, folder_id: str) -> None:
        self._client.post(f"/restore/folder/{_seg(folder_id)}", {}, operation="restore_folder")

    def restore_file(self, file_id: str) -> None:
        self._client.post(f"/restore/file/{_seg(file_id)}", {}, operation="restore_file")

    def hard_delete_folder(self, folder_id: str) -> None:
        self._client.delete(f"/folders/{_seg(folder_id)}/hard", operation="hard_delete_folder")

    def hard_delete_file(self, file_id: str) -> None:
        self._client.delete(f"/files/{_seg(file_id)}/hard", operation="hard_delete_file")

    def empty_trash(self) -> EmptyTrashResult:
        """Permanently delete everything in the trash.

        Folders are deleted first so nested items go with them, then files.
        A failed deletion is logged and counted; the sweep continues.

        Returns:
            Counts of deleted folders, deleted files and failures.
        """
        trash = self.list_trash()
        deleted_folders = deleted_files = failed = 0

        for folder in trash.folders:
            try:
                self.hard_delete_folder(folder.id)
                deleted_folders += 1
            except StoreApiError as exc:
                failed += 1
                logger.warning(
                    "[empty_trash] folder delete failed; id:%s;status:%d",
                    folder.id,
                    exc.status_code,
                )

        for stored in trash.files:
            try:
                self.hard_delete_file(stored.id)
                deleted_files += 1
            except StoreApiError as exc:
                # 404 is expected when the file went with its folder above.
                if exc.status_code == 404:
                    continue
                failed += 1
                logger.warning(
                    "[empty_trash] file delete failed; id:%s;status:%d",
                    stored.id,
                    exc.status_code,
                )

        logger.info(
            "[empty_trash] trash emptied; folders:%d;files:%d;failed:%d",
            deleted_folders,
            deleted_files,
            failed,
        )
        return EmptyTrashResult(deleted_folders, deleted_files, failed)


def folder_store_from_config(config: AppConfig) -> FolderStore:
    """Construct a FolderStore from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured FolderStore instance.
    """
    return FolderStore(store_client_from_config(config))
