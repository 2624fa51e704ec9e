"""Companion subtitle discovery and relocation."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from ..constants import (
    OPERATION_COPY,
    OPERATION_MOVE,
    OPERATION_RENAME,
    SUBTITLE_EXTENSIONS,
    VIDEO_EXTENSIONS,
)
from .file_operations import move_path, remove_path, transfer_file
from .permissions import DirectoryCache, set_file_permissions

_logger = logging.getLogger(__name__)


def is_video_file(path: Path) -> bool:
    return path.suffix.lower() in VIDEO_EXTENSIONS


def is_subtitle_file(path: Path) -> bool:
    return path.suffix.lower() in SUBTITLE_EXTENSIONS


def _split_subtitle_name(name: str) -> tuple[str, str]:
    """Split ``Show.en.srt`` into ``("Show.en", ".srt")``."""
    ext = os.path.splitext(name)[1]
    return name[: len(name) - len(ext)], ext


def find_companions(video_path: Path) -> list[Path]:
    """Find subtitles next to ``video_path`` that belong to it.

    A subtitle matches when its name without the subtitle extension is the
    video's base name, or the base name followed by ``.`` and a tag
    (``Movie.en.srt``, ``Movie.forced.it.srt``).

    Returns:
        Matching subtitle paths sorted by name; empty if the directory cannot
        be read
    """
    video_base = video_path.stem
    companions: list[Path] = []
    try:
        entries = sorted(video_path.parent.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        _logger.debug("Cannot list %s for subtitles: %s", video_path.parent, exc)
        return []

    for entry in entries:
        try:
            if not entry.is_file() or not is_subtitle_file(entry):
                continue
        except OSError:
            continue
        base, _ext = _split_subtitle_name(entry.name)
        if base == video_base or base.startswith(video_base + "."):
            companions.append(entry)
    return companions


def compute_new_path(subtitle: Path, old_video: Path, new_video: Path) -> Path:
    """Rename a subtitle the way its video was renamed.

    The tag after the old video's base name is kept, so ``Show.en.srt``
    follows ``Show.mkv -> Episode.mkv`` as ``Episode.en.srt`` in the new
    video's directory.
    """
    old_base = old_video.stem
    subtitle_base, subtitle_ext = _split_subtitle_name(subtitle.name)
    suffix = subtitle_base[len(old_base):] if len(subtitle_base) > len(old_base) else ""
    return new_video.parent / f"{new_video.stem}{suffix}{subtitle_ext}"


def relocate_companions(
    paths: Iterable[Path],
    old_video: Path,
    new_video: Path,
    *,
    operation: str,
    overwrite: bool,
    dest_root: Path,
    cache: DirectoryCache,
) -> list[str]:
    """Copy, move or rename subtitles alongside their video.

    An existing destination is skipped unless ``overwrite`` is set. Failures
    never propagate; each one is returned as a message.

    Returns:
        Error messages, one per failed subtitle
    """
    errors: list[str] = []
    ownership = cache.ownership

    for subtitle in paths:
        try:
            target = compute_new_path(subtitle, old_video, new_video)
            if os.path.abspath(subtitle) == os.path.abspath(target):
                continue

            if operation != OPERATION_RENAME:
                cache.ensure(target.parent, dest_root)

            if target.exists():
                if not overwrite:
                    _logger.info("Subtitle %s already exists, skipping", target.name)
                    continue
                remove_path(target)

            if operation == OPERATION_RENAME:
                os.rename(subtitle, target)
            elif operation == OPERATION_MOVE:
                move_path(subtitle, target, dest_root=dest_root, ownership=ownership)
            elif operation == OPERATION_COPY:
                transfer_file(subtitle, target)
            else:
                raise ValueError(f"Unknown operation '{operation}'")

            set_file_permissions(target, ownership)
            _logger.debug("Subtitle %s -> %s", subtitle.name, target)
        except (OSError, ValueError) as exc:
            _logger.warning("Subtitle %s failed: %s", subtitle.name, exc)
            errors.append(f"Subtitle failed: {subtitle.name} - {exc}")

    return errors


__all__ = [
    "is_video_file",
    "is_subtitle_file",
    "find_companions",
    "compute_new_path",
    "relocate_companions",
]
