"""Permission fixing and directory creation under a pane root."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from ..config import Ownership
from ..constants import DIR_MODE, FILE_MODE

_logger = logging.getLogger(__name__)


def _apply(path: Path, mode: int, ownership: Ownership | None) -> None:
    try:
        os.chmod(path, mode)
    except OSError as exc:
        _logger.debug("chmod %o failed for %s: %s", mode, path, exc)
    if ownership is None:
        return
    try:
        os.chown(path, ownership.uid, ownership.gid)
    except (OSError, AttributeError) as exc:
        # chown is missing on Windows and usually denied without root
        _logger.debug("chown %s:%s failed for %s: %s", ownership.uid, ownership.gid, path, exc)


def set_directory_permissions(path: Path, ownership: Ownership | None = None) -> None:
    """Apply ``DIR_MODE`` and the configured owner to a directory (best effort)."""
    _apply(path, DIR_MODE, ownership)


def set_file_permissions(path: Path, ownership: Ownership | None = None) -> None:
    """Apply ``FILE_MODE`` and the configured owner to a file (best effort)."""
    _apply(path, FILE_MODE, ownership)


def ensure_directory(target: Path, root: Path, ownership: Ownership | None = None) -> None:
    """Create ``target`` one segment at a time below ``root``.

    ``Path.mkdir(parents=True)`` does not apply the mode to intermediate
    directories, so every segment between ``root`` and ``target`` is created
    individually and gets permissions and ownership applied, including the
    segments that already existed.

    If ``target`` is not strictly inside ``root`` it is created with a single
    recursive call instead.

    Raises:
        OSError: Any error other than the directory already existing.
    """
    normalized_target = Path(os.path.abspath(target))
    normalized_root = Path(os.path.abspath(root))

    try:
        relative = normalized_target.relative_to(normalized_root)
    except ValueError:
        relative = None

    if relative is None or not relative.parts:
        normalized_target.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        set_directory_permissions(normalized_target, ownership)
        return

    current = normalized_root
    for part in relative.parts:
        current = current / part
        try:
            current.mkdir(mode=DIR_MODE)
        except FileExistsError:
            if not current.is_dir():
                raise
        set_directory_permissions(current, ownership)


class DirectoryCache:
    """Directories already materialized during one job.

    Instances are owned by a single job and discarded when it finishes.
    """

    def __init__(self, ownership: Ownership | None = None) -> None:
        self.ownership = ownership
        self._created: set[Path] = set()

    def __contains__(self, directory: object) -> bool:
        if not isinstance(directory, (str, os.PathLike)):
            return False
        return Path(os.path.abspath(directory)) in self._created

    def __len__(self) -> int:
        return len(self._created)

    def ensure(self, directory: Path, root: Path) -> None:
        key = Path(os.path.abspath(directory))
        if key in self._created:
            return
        ensure_directory(key, root, self.ownership)
        self._created.add(key)


__all__ = [
    "set_directory_permissions",
    "set_file_permissions",
    "ensure_directory",
    "DirectoryCache",
]
