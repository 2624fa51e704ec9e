"""Job request model and the state owned by one running job."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Mapping

from ..config import Ownership
from ..constants import OPERATION_RENAME, OPERATIONS, PANE_DOWNLOADS, PANES
from .events import EventSink, EventType, ProgressEvent
from .path_utils import bare_filename
from .permissions import DirectoryCache


class JobRequestError(ValueError):
    """Raised when a job request is malformed."""


class JobCancelled(Exception):
    """Raised inside a job when its cancellation event has been set."""


@dataclass(frozen=True)
class TransferItem:
    """One source -> destination pair, both relative to their pane root."""

    source_path: str
    destination_path: str

    @property
    def display_name(self) -> str:
        return bare_filename(self.destination_path) or self.source_path


@dataclass(frozen=True)
class FolderRenameOp:
    """Rename the folder at ``old_path`` (relative to the root) to ``new_name``."""

    old_path: str
    new_name: str


@dataclass(frozen=True)
class FolderCreateOp:
    """Create ``folder_name[/subfolder_name]`` next to a file and move it in.

    ``file_path`` is where the file was before the job renamed it.
    """

    file_path: str
    new_file_name: str
    folder_name: str
    subfolder_name: str | None = None

    @property
    def target_key(self) -> str:
        if self.subfolder_name:
            return f"{self.folder_name}/{self.subfolder_name}"
        return self.folder_name


@dataclass(frozen=True)
class SeasonFolderCreateOp:
    """Create a season folder at series level and move a file into it."""

    file_path: str
    new_file_name: str
    season_folder: str


@dataclass(frozen=True)
class TransferJob:
    """A batch request: ordered items plus optional folder restructuring."""

    items: tuple[TransferItem, ...]
    operation: str
    overwrite: bool = False
    pane: str = PANE_DOWNLOADS
    folder_renames: tuple[FolderRenameOp, ...] = ()
    folder_creates: tuple[FolderCreateOp, ...] = ()
    season_folder_creates: tuple[SeasonFolderCreateOp, ...] = ()

    def __post_init__(self) -> None:
        if self.operation not in OPERATIONS:
            raise JobRequestError("operation must be 'copy', 'move', or 'rename'")
        if self.pane not in PANES:
            raise JobRequestError("pane must be 'downloads' or 'media'")

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def has_folder_work(self) -> bool:
        return self.operation == OPERATION_RENAME and bool(
            self.folder_renames or self.folder_creates or self.season_folder_creates
        )

    @classmethod
    def from_request(cls, payload: Any) -> "TransferJob":
        """Build a job from a decoded JSON request body.

        Two item shapes are accepted: ``files`` with explicit
        ``sourcePath``/``destinationPath`` pairs, or ``sourcePaths`` plus one
        ``destinationFolder`` that keeps each file's name.

        Raises:
            JobRequestError: If the request is malformed
        """
        if not isinstance(payload, Mapping):
            raise JobRequestError("Request body must be a JSON object")

        files = payload.get("files")
        source_paths = payload.get("sourcePaths")
        destination_folder = payload.get("destinationFolder")

        if isinstance(files, list) and files:
            items = tuple(
                TransferItem(
                    source_path=_require_str(entry, "sourcePath", "files"),
                    destination_path=_require_str(entry, "destinationPath", "files"),
                )
                for entry in files
            )
        elif isinstance(source_paths, list) and source_paths and destination_folder is not None:
            if not isinstance(destination_folder, str):
                raise JobRequestError("'destinationFolder' must be a string")
            items = tuple(
                _item_into_folder(source, destination_folder) for source in source_paths
            )
        else:
            raise JobRequestError(
                "Either 'files' array or 'sourcePaths' with 'destinationFolder' is required"
            )

        overwrite = payload.get("overwrite", False)
        if not isinstance(overwrite, bool):
            raise JobRequestError("'overwrite' must be a boolean")

        return cls(
            items=items,
            operation=str(payload.get("operation", "")),
            overwrite=overwrite,
            pane=str(payload.get("pane") or PANE_DOWNLOADS),
            folder_renames=tuple(
                FolderRenameOp(
                    old_path=_require_str(entry, "oldPath", "folderRenames"),
                    new_name=_require_str(entry, "newName", "folderRenames"),
                )
                for entry in _optional_list(payload, "folderRenames")
            ),
            folder_creates=tuple(
                FolderCreateOp(
                    file_path=_require_str(entry, "filePath", "folderCreates"),
                    new_file_name=_require_str(entry, "newFileName", "folderCreates"),
                    folder_name=_require_str(entry, "folderName", "folderCreates"),
                    subfolder_name=_optional_str(entry, "subfolderName", "folderCreates"),
                )
                for entry in _optional_list(payload, "folderCreates")
            ),
            season_folder_creates=tuple(
                SeasonFolderCreateOp(
                    file_path=_require_str(entry, "filePath", "seasonFolderCreates"),
                    new_file_name=_require_str(entry, "newFileName", "seasonFolderCreates"),
                    season_folder=_require_str(entry, "seasonFolder", "seasonFolderCreates"),
                )
                for entry in _optional_list(payload, "seasonFolderCreates")
            ),
        )


def _item_into_folder(source: Any, destination_folder: str) -> TransferItem:
    if not isinstance(source, str) or not source:
        raise JobRequestError("'sourcePaths' entries must be non-empty strings")
    name = bare_filename(source) or source
    destination = f"{destination_folder}/{name}" if destination_folder else name
    return TransferItem(source_path=source, destination_path=destination)


def _optional_list(payload: Mapping[str, Any], key: str) -> list[Any]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise JobRequestError(f"'{key}' must be an array")
    return value


def _require_str(entry: Any, key: str, section: str) -> str:
    if not isinstance(entry, Mapping):
        raise JobRequestError(f"'{section}' entries must be objects")
    value = entry.get(key)
    if not isinstance(value, str) or not value:
        raise JobRequestError(f"'{section}' entries need a non-empty '{key}'")
    return value


def _optional_str(entry: Mapping[str, Any], key: str, section: str) -> str | None:
    value = entry.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise JobRequestError(f"'{section}' field '{key}' must be a string")
    return value


@dataclass
class JobContext:
    """Mutable state of one job invocation.

    Counters, error lists and the created-directories cache live here and
    are discarded with the context when the terminal event has been sent.
    """

    job: TransferJob
    sink: EventSink
    cache: DirectoryCache
    cancel_event: threading.Event | None = None
    completed: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    folder_errors: list[str] = field(default_factory=list)

    @property
    def ownership(self) -> Ownership | None:
        return self.cache.ownership

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def check_cancelled(self) -> None:
        if self.cancelled:
            raise JobCancelled()

    def fail(self, message: str) -> None:
        self.failed += 1
        self.errors.append(message)

    def emit(self, event_type: EventType, *, current: int, **fields: Any) -> ProgressEvent:
        event = ProgressEvent(
            type=event_type,
            current=current,
            total=self.job.total,
            completed=fields.pop("completed", self.completed),
            failed=fields.pop("failed", self.failed),
            errors=tuple(fields.pop("errors", self.errors)),
            **fields,
        )
        self.sink(event)
        return event


__all__ = [
    "JobRequestError",
    "JobCancelled",
    "TransferItem",
    "FolderRenameOp",
    "FolderCreateOp",
    "SeasonFolderCreateOp",
    "TransferJob",
    "JobContext",
]
