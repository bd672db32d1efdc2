"""Folder upload: rebuilds a local directory tree on the store."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

from drive_tree.errors import (
    PartialUploadFailure,
    StoreApiError,
    StoreAuthError,
    UploadCancelled,
)
from drive_tree.store.api import FolderStore, folder_store_from_config

if TYPE_CHECKING:
    from drive_tree.config import AppConfig
    from drive_tree.store.models import StoredFile

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "/"

ProgressCallback = Callable[[int, int], None]
CancelCheck = Callable[[], bool]


@dataclass(frozen=True)
class UploadEntry:
    """One file picked as part of a local directory.

    ``relative_path`` looks like ``Top/sub/child/file.ext``: the first
    segment names the selected directory, the last one the file.
    """

    relative_path: str
    content: bytes = field(repr=False)

    def __post_init__(self) -> None:
        segments = self.relative_path.split(PATH_SEPARATOR)
        if len(segments) < 2:
            raise ValueError(
                f"relative path needs a directory and a file name: {self.relative_path!r}"
            )
        if any(not segment for segment in segments):
            raise ValueError(f"relative path has an empty segment: {self.relative_path!r}")

    @property
    def segments(self) -> list[str]:
        return self.relative_path.split(PATH_SEPARATOR)

    @property
    def top_level_name(self) -> str:
        return self.segments[0]

    @property
    def directory_segments(self) -> list[str]:
        """Intermediate directories between the top level and the file."""
        return self.segments[1:-1]

    @property
    def file_name(self) -> str:
        return self.segments[-1]

    @property
    def size(self) -> int:
        return len(self.content)


class FolderKey(NamedTuple):
    """Cache key for one resolved folder: its parent (None for root) and name."""

    parent_id: str | None
    name: str


@dataclass
class UploadResult:
    """Progress and outcome of one upload batch.

    Attributes:
        total: Number of entries in the batch.
        processed: Entries handled so far, successful or not.
        uploaded: Stored file records, in input order.
        folders_created: Folders created by this batch.
        failures: ``(relative_path, error)`` pairs in input order.
    """

    total: int
    processed: int = 0
    uploaded: list[StoredFile] = field(default_factory=list)
    folders_created: int = 0
    failures: list[tuple[str, Exception]] = field(default_factory=list)

    @property
    def first_failed_path(self) -> str | None:
        return self.failures[0][0] if self.failures else None

    @property
    def succeeded(self) -> bool:
        return not self.failures and self.processed == self.total


class _UploadBatch:
    """Per-batch state: the folder cache and remembered resolution failures."""

    def __init__(self, store: FolderStore, result: UploadResult) -> None:
        self._store = store
        self._result = result
        self._folders: dict[FolderKey, str] = {}
        self._failed: dict[FolderKey, Exception] = {}

    def resolve_folder(self, parent_id: str | None, name: str) -> str:
        """Resolve-or-create the folder ``name`` under ``parent_id``.

        Reuses the first existing child with exactly that name, otherwise
        creates it. Each key reaches the store at most once per batch; a
        failed key re-raises its original error.
        """
        key = FolderKey(parent_id, name)
        if key in self._folders:
            return self._folders[key]
        if key in self._failed:
            raise self._failed[key]

        try:
            match = next(
                (f for f in self._store.list_folders(parent_id) if f.name == name),
                None,
            )
            if match is None:
                match = self._store.create_folder(name, parent_id)
                self._result.folders_created += 1
        except (StoreApiError, StoreAuthError) as exc:
            self._failed[key] = exc
            logger.warning(
                "[resolve_folder] folder resolution failed; parent_id:%s;name:%s",
                parent_id or "root",
                name,
            )
            raise

        self._folders[key] = match.id
        return match.id

    def resolve_leaf(self, destination_parent_id: str | None, entry: UploadEntry) -> str:
        """Walk the entry's directories from the destination down to its leaf parent.

        A resolution error names the folder path whose key failed, which is
        shared by every entry below it.
        """
        parent_id = destination_parent_id
        leaf_id = ""
        segments = [entry.top_level_name, *entry.directory_segments]
        for depth, segment in enumerate(segments, start=1):
            try:
                leaf_id = self.resolve_folder(parent_id, segment)
            except StoreApiError as exc:
                if exc.path is None:
                    exc.path = PATH_SEPARATOR.join(segments[:depth])
                raise
            parent_id = leaf_id
        return leaf_id

    def process(self, destination_parent_id: str | None, entry: UploadEntry) -> None:
        try:
            leaf_id = self.resolve_leaf(destination_parent_id, entry)
        except (StoreApiError, StoreAuthError) as exc:
            self._result.failures.append((entry.relative_path, exc))
            return
        try:
            stored = self._store.upload_file(entry.content, entry.file_name, leaf_id)
        except (StoreApiError, StoreAuthError) as exc:
            if isinstance(exc, StoreApiError) and exc.path is None:
                exc.path = entry.relative_path
            self._result.failures.append((entry.relative_path, exc))
            return
        self._result.uploaded.append(stored)


def reconstruct_and_upload(
    store: FolderStore,
    entries: Sequence[UploadEntry],
    destination_parent_id: str | None,
    on_progress: ProgressCallback | None = None,
    should_cancel: CancelCheck | None = None,
) -> UploadResult:
    """Recreate the directory structure of ``entries`` and upload every file.

    Entries are processed one at a time in input order. Folder resolution is
    cached per ``(parent, name)`` for the duration of the batch, so a folder
    shared by many files is listed and created at most once, and running the
    same batch again reuses the folders created the first time.

    Args:
        store: Store to create folders and upload files in.
        entries: Files of the selected directory, in any order.
        destination_parent_id: Folder to attach the top-level directory to,
            None for root.
        on_progress: Called with ``(i, total)`` after each entry is processed.
        should_cancel: Checked before each entry; returning True stops the
            batch without leaving an entry half done.

    Returns:
        UploadResult for a batch in which every entry succeeded.

    Raises:
        PartialUploadFailure: One or more entries failed. Nothing is rolled
            back; the result lists every failed path.
        UploadCancelled: ``should_cancel`` returned True.
    """
    total = len(entries)
    result = UploadResult(total=total)
    batch = _UploadBatch(store, result)
    logger.info(
        "[reconstruct_and_upload] starting folder upload; destination:%s;file_count:%d",
        destination_parent_id or "root",
        total,
    )

    for i, entry in enumerate(entries, start=1):
        if should_cancel is not None and should_cancel():
            logger.info(
                "[reconstruct_and_upload] upload cancelled; processed:%d;total:%d",
                result.processed,
                total,
            )
            raise UploadCancelled(result)

        batch.process(destination_parent_id, entry)
        result.processed = i
        if on_progress is not None:
            on_progress(i, total)

    if result.failures:
        logger.error(
            "[reconstruct_and_upload] folder upload finished with failures;"
            " failed:%d;total:%d;first_failed_path:%s",
            len(result.failures),
            total,
            result.first_failed_path,
        )
        raise PartialUploadFailure(result)

    logger.info(
        "[reconstruct_and_upload] folder upload complete; uploaded:%d;folders_created:%d",
        len(result.uploaded),
        result.folders_created,
    )
    return result


def entries_from_directory(directory: str | Path) -> list[UploadEntry]:
    """Build upload entries for every file under a local directory.

    Paths are prefixed with the directory's own name, the same shape a
    browser directory picker reports. Entries are sorted by path. Relative
    arguments such as ``"."`` take the name of the directory they resolve to.
    """
    root = Path(directory)
    if not root.is_dir():
        raise NotADirectoryError(str(root))
    top_level_name = root.resolve().name
    if not top_level_name:
        raise ValueError(f"directory has no name to upload under: {str(root)!r}")
    return [
        UploadEntry(f"{top_level_name}/{path.relative_to(root).as_posix()}", path.read_bytes())
        for path in sorted(root.rglob("*"))
        if path.is_file()
    ]


class FolderUploader:
    """Runs folder uploads against one store; each call gets a fresh cache."""

    def __init__(self, store: FolderStore) -> None:
        self._store = store

    def upload(
        self,
        entries: Iterable[UploadEntry],
        destination_parent_id: str | None,
        on_progress: ProgressCallback | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> UploadResult:
        return reconstruct_and_upload(
            self._store,
            list(entries),
            destination_parent_id,
            on_progress=on_progress,
            should_cancel=should_cancel,
        )


def folder_uploader_from_config(config: AppConfig) -> FolderUploader:
    """Construct a FolderUploader from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured FolderUploader instance.
    """
    return FolderUploader(folder_store_from_config(config))
