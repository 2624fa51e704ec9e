"""Streaming copy, move and rename of single files and directory trees."""

from __future__ import annotations

import enum
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from ..config import Ownership
from ..constants import (
    COPY_CHUNK_SIZE,
    OPERATION_COPY,
    OPERATION_MOVE,
    OPERATION_RENAME,
)
from .path_utils import is_inside_root
from .permissions import ensure_directory, set_directory_permissions, set_file_permissions

_logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class TransferOutcome(enum.Enum):
    """How a single item ended up at its destination."""

    UNCHANGED = "unchanged"  # source already was the destination
    RENAMED = "renamed"  # atomic rename, completed instantly
    COPIED = "copied"  # streamed copy (copy, or move fallback)


@dataclass(frozen=True)
class FileEntry:
    """A regular file found below a directory being copied."""

    relative_path: Path
    absolute_path: Path
    size: int


def transfer_file(
    source: Path,
    dest: Path,
    on_progress: ProgressCallback | None = None,
    *,
    chunk_size: int = COPY_CHUNK_SIZE,
) -> int:
    """Copy ``source`` to ``dest`` chunk by chunk.

    ``on_progress(bytes_so_far, total_bytes)`` is called after every chunk,
    or once with ``(0, total)`` for an empty file.
    A failed copy leaves whatever was written at ``dest`` in place.

    Returns:
        Number of bytes copied
    """
    total = source.stat().st_size
    copied = 0
    with source.open("rb") as reader, dest.open("wb") as writer:
        while True:
            chunk = reader.read(chunk_size)
            if not chunk:
                break
            writer.write(chunk)
            copied += len(chunk)
            if on_progress is not None:
                on_progress(copied, total)
    if copied == 0 and on_progress is not None:
        on_progress(0, total)
    return copied


def collect_directory_files(directory: Path) -> list[FileEntry]:
    """List every regular file below ``directory`` with its size."""
    entries: list[FileEntry] = []
    for dirpath, dirnames, filenames in os.walk(directory):
        dirnames.sort()
        root_path = Path(dirpath)
        for fname in sorted(filenames):
            absolute = root_path / fname
            if not absolute.is_file():
                continue
            entries.append(
                FileEntry(
                    relative_path=absolute.relative_to(directory),
                    absolute_path=absolute,
                    size=absolute.stat().st_size,
                )
            )
    return entries


def transfer_directory(
    source: Path,
    dest: Path,
    root: Path,
    on_progress: ProgressCallback | None = None,
    *,
    ownership: Ownership | None = None,
) -> int:
    """Copy a directory tree reporting progress against the whole tree.

    The grand total is computed before the first byte is copied; per-file
    progress is offset by the sizes of the files already completed. An empty
    tree still reports a single ``(0, 0)`` update.

    Returns:
        Number of bytes copied
    """
    files = collect_directory_files(source)
    total_bytes = sum(entry.size for entry in files)
    completed_bytes = 0

    ensure_directory(dest, root, ownership)

    for entry in files:
        target = dest / entry.relative_path
        ensure_directory(target.parent, root, ownership)

        def _tree_progress(copied: int, _file_total: int, *, offset: int = completed_bytes) -> None:
            if on_progress is not None:
                on_progress(offset + copied, total_bytes)

        transfer_file(entry.absolute_path, target, _tree_progress)
        set_file_permissions(target, ownership)
        completed_bytes += entry.size

    if not files and on_progress is not None:
        on_progress(0, 0)

    return completed_bytes


def remove_path(path: Path) -> None:
    """Remove a file or a directory tree; a missing path is not an error."""
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        pass


def copy_path(
    source: Path,
    dest: Path,
    on_progress: ProgressCallback | None = None,
    *,
    dest_root: Path,
    ownership: Ownership | None = None,
) -> None:
    """Stream a file or a directory tree to ``dest``."""
    if source.is_dir():
        transfer_directory(source, dest, dest_root, on_progress, ownership=ownership)
    else:
        transfer_file(source, dest, on_progress)


def move_path(
    source: Path,
    dest: Path,
    on_progress: ProgressCallback | None = None,
    *,
    dest_root: Path,
    ownership: Ownership | None = None,
) -> TransferOutcome:
    """Move ``source`` to ``dest``, preferring an atomic rename.

    Any rename failure (cross-device, permission, bind mounts inside
    containers) falls back to a streamed copy followed by deleting the source.
    """
    try:
        os.rename(source, dest)
    except OSError as exc:
        _logger.info("Rename failed for %s (%s); falling back to copy", source.name, exc)
    else:
        if dest.is_dir():
            set_directory_permissions(dest, ownership)
        else:
            set_file_permissions(dest, ownership)
        return TransferOutcome.RENAMED

    copy_path(source, dest, on_progress, dest_root=dest_root, ownership=ownership)
    if source.is_dir():
        shutil.rmtree(source)
    else:
        source.unlink()
    return TransferOutcome.COPIED


def _same_location(source: Path, dest: Path) -> bool:
    return os.path.abspath(source) == os.path.abspath(dest)


def transfer_item(
    source: Path,
    dest: Path,
    *,
    operation: str,
    overwrite: bool,
    dest_root: Path,
    ownership: Ownership | None = None,
    on_progress: ProgressCallback | None = None,
) -> TransferOutcome:
    """Copy, move or rename one file or directory.

    Args:
        source: Existing absolute source path
        dest: Absolute destination path (parent directory must exist)
        operation: ``copy``, ``move`` or ``rename``
        overwrite: Remove an existing destination first
        dest_root: Pane root the destination lives under
        ownership: Optional owner for created entries
        on_progress: Byte progress callback for streamed copies

    Returns:
        How the item was transferred
    """
    if operation not in (OPERATION_COPY, OPERATION_MOVE, OPERATION_RENAME):
        raise ValueError(f"Unknown operation '{operation}'")

    if operation != OPERATION_COPY and _same_location(source, dest):
        return TransferOutcome.UNCHANGED
    if operation == OPERATION_COPY and _same_location(source, dest):
        raise ValueError("Source and destination are the same path")

    if overwrite and is_inside_root(source, dest):
        raise ValueError("Destination contains the source")

    # a case-only rename on a case-insensitive volume sees the source as dest
    if overwrite and not (dest.exists() and os.path.samefile(source, dest)):
        remove_path(dest)

    if operation == OPERATION_RENAME:
        os.rename(source, dest)
        return TransferOutcome.RENAMED

    if operation == OPERATION_MOVE:
        return move_path(source, dest, on_progress, dest_root=dest_root, ownership=ownership)

    copy_path(source, dest, on_progress, dest_root=dest_root, ownership=ownership)
    return TransferOutcome.COPIED


__all__ = [
    "ProgressCallback",
    "TransferOutcome",
    "FileEntry",
    "transfer_file",
    "collect_directory_files",
    "transfer_directory",
    "remove_path",
    "copy_path",
    "move_path",
    "transfer_item",
]
