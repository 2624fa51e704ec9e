"""Constants and regular expressions for media transfers."""

from __future__ import annotations

import re

# Panes and operations
PANE_DOWNLOADS = "downloads"
PANE_MEDIA = "media"
PANES = (PANE_DOWNLOADS, PANE_MEDIA)

OPERATION_COPY = "copy"
OPERATION_MOVE = "move"
OPERATION_RENAME = "rename"
OPERATIONS = (OPERATION_COPY, OPERATION_MOVE, OPERATION_RENAME)

# File type detection
SUBTITLE_EXTENSIONS = frozenset({".srt", ".ass", ".ssa", ".sub", ".idx", ".vtt", ".sup"})
VIDEO_EXTENSIONS = frozenset(
    {
        ".mkv",
        ".mp4",
        ".avi",
        ".mov",
        ".wmv",
        ".flv",
        ".webm",
        ".m4v",
        ".mpg",
        ".mpeg",
        ".ts",
        ".m2ts",
        ".vob",
    }
)

# Permissions applied to everything we create (Unraid/Docker friendly)
DIR_MODE = 0o777
FILE_MODE = 0o666

# Streaming copy
COPY_CHUNK_SIZE = 1024 * 1024

# Progress reporting
PROGRESS_THROTTLE_SECONDS = 0.1
RATE_SMOOTHING_FACTOR = 0.3

# Folder rename retry on transient locks
FOLDER_RENAME_RETRIES = 3
FOLDER_RENAME_RETRY_DELAY = 0.5

# "Season 1", "Season 01", "season01"
SEASON_FOLDER_RE = re.compile(r"season\s*\d{1,2}", re.IGNORECASE)


__all__ = [
    "PANE_DOWNLOADS",
    "PANE_MEDIA",
    "PANES",
    "OPERATION_COPY",
    "OPERATION_MOVE",
    "OPERATION_RENAME",
    "OPERATIONS",
    "SUBTITLE_EXTENSIONS",
    "VIDEO_EXTENSIONS",
    "DIR_MODE",
    "FILE_MODE",
    "COPY_CHUNK_SIZE",
    "PROGRESS_THROTTLE_SECONDS",
    "RATE_SMOOTHING_FACTOR",
    "FOLDER_RENAME_RETRIES",
    "FOLDER_RENAME_RETRY_DELAY",
    "SEASON_FOLDER_RE",
]
