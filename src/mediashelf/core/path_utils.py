"""Path utilities: root confinement, sanitizing and season folder detection."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

from ..constants import SEASON_FOLDER_RE

_ILLEGAL_NAME_CHARS_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_RESERVED_NAME_RE = re.compile(r"^(CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])(\.|$)", re.IGNORECASE)
_MAX_NAME_LENGTH = 255


@dataclass(frozen=True)
class PathValidation:
    """Outcome of resolving a relative path against a pane root."""

    valid: bool
    absolute_path: Path | None = None
    error: str | None = None


def is_inside_root(path: Path | str, root: Path | str) -> bool:
    """Check that ``path`` is ``root`` itself or lies strictly below it.

    Both paths are normalized lexically (no symlink resolution) and compared
    as strings with the separator appended to the root.
    """
    normalized = os.path.abspath(str(path))
    normalized_root = os.path.abspath(str(root))
    if normalized == normalized_root:
        return True
    return normalized.startswith(normalized_root.rstrip(os.sep) + os.sep)


def _strip_request(requested: str) -> str:
    return requested.replace("\\", "/").lstrip("/")


def validate_path(root: Path, requested: str) -> PathValidation:
    """Resolve ``requested`` under ``root`` and reject anything escaping it.

    Existing paths are resolved through symlinks; a path that does not exist
    yet is accepted when its parent directory resolves inside the root.
    """
    if "\0" in requested:
        return PathValidation(False, error="Invalid path characters")

    base = Path(os.path.abspath(root))
    full_path = Path(os.path.abspath(base / _strip_request(requested)))

    if not is_inside_root(full_path, base):
        return PathValidation(False, error="Path traversal detected")

    real_base = base.resolve()
    if full_path.exists() or full_path.is_symlink():
        real_path = full_path.resolve()
        if not is_inside_root(real_path, real_base):
            return PathValidation(False, error="Symlink escape detected")
        return PathValidation(True, absolute_path=real_path)

    parent = full_path.parent
    if not parent.is_dir():
        return PathValidation(False, error="Parent directory does not exist")
    if not is_inside_root(parent.resolve(), real_base):
        return PathValidation(False, error="Invalid parent directory")
    return PathValidation(True, absolute_path=full_path)


def sanitize_relative_path(value: str) -> str:
    """Drop empty, ``.`` and ``..`` segments from a caller supplied path.

    Returns:
        Forward-slash joined path, or an empty string when nothing is left
    """
    parts = [
        part
        for part in _strip_request(value).split("/")
        if part and part not in {".", ".."}
    ]
    return "/".join(parts)


def split_relative(value: str) -> tuple[list[str], str]:
    """Split a relative path into its directory parts and final name."""
    parts = _strip_request(value).split("/")
    name = parts.pop() if parts else ""
    return parts, name


def bare_filename(value: str) -> str:
    """Return the last segment of ``value`` after separator normalization."""
    return split_relative(value)[1]


def validate_file_name(name: str) -> str | None:
    """Check a single file or folder name.

    Returns:
        ``None`` if the name is usable, otherwise a description of the problem
    """
    if not name or not name.strip():
        return "Name cannot be empty or whitespace only"
    trimmed = name.strip()
    if _ILLEGAL_NAME_CHARS_RE.search(trimmed):
        return 'Name contains illegal characters: < > : " / \\ | ? *'
    if _RESERVED_NAME_RE.match(trimmed):
        return "Name is a reserved system name (CON, PRN, AUX, NUL, COM1-9, LPT1-9)"
    if trimmed in {".", ".."}:
        return "Name cannot be just dots"
    if trimmed.endswith((" ", ".")):
        return "Name cannot end with a space or dot"
    if len(trimmed) > _MAX_NAME_LENGTH:
        return f"Name is too long (max {_MAX_NAME_LENGTH} characters)"
    return None


def is_season_directory(name: str) -> bool:
    """Check if a directory name looks like a season folder.

    Examples:
        - "Season 1", "Season 01"
        - "season 2", "SEASON02"
    """
    return SEASON_FOLDER_RE.search(name) is not None


def join_under(root: Path, parts: list[str]) -> Path:
    """Join relative ``parts`` below ``root`` (the root itself for no parts)."""
    return root.joinpath(*parts) if parts else root


__all__ = [
    "PathValidation",
    "is_inside_root",
    "validate_path",
    "sanitize_relative_path",
    "split_relative",
    "bare_filename",
    "validate_file_name",
    "is_season_directory",
    "join_under",
]
