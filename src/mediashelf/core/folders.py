"""Folder restructuring after a rename job.

Three phases run in order once every file of the job has been renamed:

1. main folder creation (``folderCreates``)
2. season folder creation (``seasonFolderCreates``)
3. folder renames (``folderRenames``, deepest first)

Operations reference files and folders by their path relative to the pane
root *before* the job started, so each phase has to find its target again:
files are looked up under their new name first and their original name
second, folders are looked up through the renames already applied.
"""

from __future__ import annotations

import errno
import logging
import os
import time
from pathlib import Path
from typing import Callable, Iterable, Iterator, Sequence

from ..constants import (
    FOLDER_RENAME_RETRIES,
    FOLDER_RENAME_RETRY_DELAY,
    OPERATION_MOVE,
    OPERATION_RENAME,
)
from .companions import find_companions, is_video_file, relocate_companions
from .file_operations import move_path
from .job import FolderCreateOp, FolderRenameOp, JobContext, SeasonFolderCreateOp, TransferJob
from .path_utils import (
    bare_filename,
    is_inside_root,
    is_season_directory,
    join_under,
    sanitize_relative_path,
    split_relative,
    validate_file_name,
)
from .permissions import set_directory_permissions, set_file_permissions

_logger = logging.getLogger(__name__)

_LOCK_ERRNOS = {errno.EBUSY}
# access denied is a sharing lock only on Windows
_WINDOWS_LOCK_ERRNOS = {errno.EPERM, errno.EACCES}
_WINDOWS_SHARING_VIOLATION = 32


class RenamedPathMap:
    """Folder renames applied so far, in the order they happened."""

    def __init__(self) -> None:
        self._renames: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._renames)

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self._renames.items())

    def get(self, old_path: str) -> str | None:
        return self._renames.get(old_path)

    def record(self, old_path: str, new_path: str) -> None:
        self._renames[old_path] = new_path

    def resolve(self, path: str) -> str:
        """Rewrite ``path`` through every recorded rename.

        Exact matches and ancestors both apply, so after ``A/B -> A/B2`` and
        ``A -> A2`` the path ``A/B`` resolves to ``A2/B2``.
        """
        current = path
        for old_path, new_path in self._renames.items():
            if current == old_path:
                current = new_path
            elif current.startswith(old_path + "/"):
                current = new_path + current[len(old_path):]
        return current


def is_lock_error(exc: OSError) -> bool:
    """True for errors that usually mean another process holds the folder."""
    winerror = getattr(exc, "winerror", None)
    if winerror == _WINDOWS_SHARING_VIOLATION:
        return True
    if winerror is not None and exc.errno in _WINDOWS_LOCK_ERRNOS:
        return True
    return exc.errno in _LOCK_ERRNOS


def rename_with_retry(
    source: Path,
    dest: Path,
    *,
    retries: int = FOLDER_RENAME_RETRIES,
    delay: float = FOLDER_RENAME_RETRY_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Rename ``source``, retrying only while the folder looks locked."""
    for attempt in range(1, retries + 1):
        try:
            os.rename(source, dest)
            return
        except OSError as exc:
            if is_lock_error(exc) and attempt < retries:
                _logger.warning(
                    "Rename of %s failed (attempt %s/%s): %s; retrying in %ss",
                    source.name,
                    attempt,
                    retries,
                    exc,
                    delay,
                )
                sleep(delay)
                continue
            raise


def _group_by(ops: Iterable, key: Callable) -> dict[str, list]:
    groups: dict[str, list] = {}
    for op in ops:
        groups.setdefault(key(op), []).append(op)
    return groups


def _locate_file(file_path: str, new_file_name: str, root: Path) -> tuple[Path, Path | None]:
    """Find a file under its post-rename name, then under its original name.

    Returns:
        The file's parent directory and its current path (``None`` if gone)
    """
    parent_parts, original_name = split_relative(sanitize_relative_path(file_path))
    parent = join_under(root, parent_parts)
    candidates = [bare_filename(new_file_name), original_name]
    for name in candidates:
        if name and (parent / name).is_file():
            return parent, parent / name
    return parent, None


def _move_into(
    file_path: str,
    new_file_name: str,
    target: Path,
    root: Path,
    ctx: JobContext,
    *,
    label: str,
) -> None:
    parent, current = _locate_file(file_path, new_file_name, root)
    if current is None:
        _logger.warning("[%s] %s not found under new or original name, skipping", label, file_path)
        return
    if os.path.abspath(parent) == os.path.abspath(target):
        _logger.info("[%s] %s already in place", label, current.name)
        return

    destination = target / current.name
    if destination.exists():
        ctx.folder_errors.append(f"Already exists: {label}/{current.name}")
        return

    companions = find_companions(current) if is_video_file(current) else []
    try:
        move_path(current, destination, dest_root=root, ownership=ctx.ownership)
        set_file_permissions(destination, ctx.ownership)
    except OSError as exc:
        _logger.error("[%s] Failed to move %s: %s", label, current.name, exc)
        ctx.folder_errors.append(f"Failed to move {current.name} into {label}: {exc}")
        return
    _logger.info("[%s] Moved %s", label, current.name)

    if companions:
        ctx.folder_errors.extend(
            relocate_companions(
                companions,
                current,
                destination,
                operation=OPERATION_MOVE,
                overwrite=False,
                dest_root=root,
                cache=ctx.cache,
            )
        )


def _invalid_segments(names: Sequence[str]) -> str | None:
    for name in names:
        problem = validate_file_name(name)
        if problem:
            return f"{name}: {problem}"
    return None


def create_main_folders(ops: Sequence[FolderCreateOp], root: Path, ctx: JobContext) -> None:
    """Create main folders (and optional subfolders) and move files into them."""
    for label, group in _group_by(ops, lambda op: op.target_key).items():
        ctx.check_cancelled()
        first = group[0]
        segments = [first.folder_name] + ([first.subfolder_name] if first.subfolder_name else [])
        problem = _invalid_segments(segments)
        if problem:
            ctx.folder_errors.append(f"Invalid folder name {problem}")
            continue

        parent_parts, _name = split_relative(sanitize_relative_path(first.file_path))
        target = join_under(root, parent_parts).joinpath(*segments)
        if not is_inside_root(target, root):
            ctx.folder_errors.append(f"Invalid folder path: {label}")
            continue

        try:
            ctx.cache.ensure(target, root)
        except OSError as exc:
            ctx.folder_errors.append(f"Folder create failed: {label} - {exc}")
            continue

        _logger.info("[folder-create] %s: %s file(s)", label, len(group))
        for op in group:
            _move_into(op.file_path, op.new_file_name, target, root, ctx, label=label)


def create_season_folders(
    ops: Sequence[SeasonFolderCreateOp], root: Path, ctx: JobContext
) -> None:
    """Create season folders at series level and move files into them.

    A file already sitting in a season folder gets the new season folder as
    a sibling of that folder, never nested inside it.
    """
    for season_folder, group in _group_by(ops, lambda op: op.season_folder).items():
        ctx.check_cancelled()
        segments = sanitize_relative_path(season_folder).split("/")
        problem = _invalid_segments(segments)
        if problem:
            ctx.folder_errors.append(f"Invalid season folder {problem}")
            continue

        parent_parts, _name = split_relative(sanitize_relative_path(group[0].file_path))
        if len(parent_parts) > 1 and is_season_directory(parent_parts[-1]):
            parent_parts = parent_parts[:-1]
        series_dir = join_under(root, parent_parts)
        season_dir = series_dir.joinpath(*segments)
        if not is_inside_root(season_dir, root):
            ctx.folder_errors.append(f"Invalid folder path: {season_folder}")
            continue
        if not series_dir.is_dir():
            _logger.warning("[season-folder] %s is not a directory, skipping %s", series_dir, season_folder)
            continue

        try:
            ctx.cache.ensure(season_dir, series_dir)
        except OSError as exc:
            ctx.folder_errors.append(f"Folder create failed: {season_folder} - {exc}")
            continue

        _logger.info("[season-folder] %s: %s file(s)", season_folder, len(group))
        for op in group:
            _move_into(op.file_path, op.new_file_name, season_dir, root, ctx, label=season_folder)


def rename_folders(
    ops: Sequence[FolderRenameOp],
    root: Path,
    ctx: JobContext,
    *,
    renamed: RenamedPathMap | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RenamedPathMap:
    """Rename folders in the given (deepest first) order.

    An existing destination is never touched; the rename is skipped.

    Returns:
        The map of renames that succeeded
    """
    renamed = renamed if renamed is not None else RenamedPathMap()

    for op in ops:
        ctx.check_cancelled()
        relative = sanitize_relative_path(renamed.resolve(sanitize_relative_path(op.old_path)))
        if not relative:
            _logger.warning("[folder-rename] Empty path for %r, skipping", op.old_path)
            continue

        problem = validate_file_name(op.new_name)
        if problem:
            ctx.folder_errors.append(
                f"Folder rename failed: {op.old_path} -> {op.new_name} ({problem})"
            )
            continue

        folder = root / relative
        if not is_inside_root(folder, root) or os.path.abspath(folder) == os.path.abspath(root):
            _logger.warning("[folder-rename] %s is outside the root, skipping", op.old_path)
            continue
        if not folder.is_dir():
            _logger.warning("[folder-rename] %s is not a directory, skipping", relative)
            continue

        new_name = op.new_name.strip()
        if folder.name == new_name:
            _logger.info("[folder-rename] %s already named %s", relative, new_name)
            continue
        new_folder = folder.parent / new_name
        if os.path.lexists(new_folder):
            _logger.warning("[folder-rename] %s already exists, leaving %s alone", new_folder, relative)
            continue

        try:
            rename_with_retry(folder, new_folder, sleep=sleep)
        except OSError as exc:
            _logger.error("[folder-rename] %s -> %s failed: %s", relative, new_name, exc)
            if is_lock_error(exc):
                ctx.folder_errors.append(
                    f'Folder "{op.old_path}" is locked (close any programs using it)'
                )
            else:
                ctx.folder_errors.append(f"Folder rename failed: {op.old_path} -> {op.new_name}")
            continue

        set_directory_permissions(new_folder, ctx.ownership)
        parent_parts, _name = split_relative(relative)
        renamed.record(relative, "/".join(parent_parts + [new_name]))
        _logger.info("[folder-rename] %s -> %s", relative, new_name)

    return renamed


def reorganize(job: TransferJob, root: Path, ctx: JobContext) -> list[str]:
    """Run the three folder phases of a rename job.

    Returns:
        Folder errors collected on ``ctx``
    """
    if job.operation != OPERATION_RENAME:
        return ctx.folder_errors
    if job.folder_creates:
        create_main_folders(job.folder_creates, root, ctx)
    if job.season_folder_creates:
        ctx.check_cancelled()
        create_season_folders(job.season_folder_creates, root, ctx)
    if job.folder_renames:
        ctx.check_cancelled()
        rename_folders(job.folder_renames, root, ctx)
    return ctx.folder_errors


__all__ = [
    "RenamedPathMap",
    "is_lock_error",
    "rename_with_retry",
    "create_main_folders",
    "create_season_folders",
    "rename_folders",
    "reorganize",
]
