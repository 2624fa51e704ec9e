"""Progress presentation utilities for the command line."""

from __future__ import annotations

import os
import shutil
import sys

from .core.events import EventType, ProgressEvent

_BLUE = "\033[34m"
_RED = "\033[31m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_RESET = "\033[0m"

_BYTE_UNITS = ("B", "KB", "MB", "GB", "TB")


def _supports_color() -> bool:
    return sys.stdout.isatty() and os.environ.get("NO_COLOR") is None


_COLOR_ENABLED = _supports_color()


def _get_terminal_width() -> int:
    """Get the current terminal width, with fallback to 100."""
    try:
        return shutil.get_terminal_size(fallback=(100, 24)).columns
    except (OSError, ValueError):
        return 100


def _truncate_to_fit(text: str, max_width: int | None = None) -> str:
    """Truncate text to fit terminal width.

    Args:
        text: Text to truncate
        max_width: Maximum width (defaults to terminal width)

    Returns:
        Truncated text with '...' if too long
    """
    if max_width is None:
        max_width = _get_terminal_width()

    # ANSI color codes take no visual space
    if "\033[" in text:
        effective_length = len(text) - text.count("\033[") * 8
    else:
        effective_length = len(text)

    if effective_length > max_width:
        cut_at = max_width - 3
        if cut_at > 20:
            last_space = text[:cut_at].rfind(" ")
            if last_space > cut_at - 20:
                cut_at = last_space
        return text[:cut_at] + "..."
    return text


def _paint(text: str, *, color: str | None = None) -> str:
    if not _COLOR_ENABLED:
        return text
    return f"{color or _BLUE}{text}{_RESET}"


def format_bytes(value: int | float) -> str:
    """Format a byte count as ``1.5 GB``."""
    size = float(value)
    for unit in _BYTE_UNITS[:-1]:
        if abs(size) < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} {_BYTE_UNITS[-1]}"


def format_progress(
    current: int, total: int, *, width: int = 20, color: str | None = None
) -> str:
    safe_total = max(total, 1)
    safe_current = max(0, min(current, safe_total))
    ratio = safe_current / safe_total
    filled = int(ratio * width)
    if safe_current > 0 and filled == 0:
        filled = 1
    bar = "#" * filled + "-" * (width - filled)
    percent = int(round(ratio * 100))
    return f"{_paint('[' + bar + ']', color=color)} {percent:3d}% ({safe_current}/{safe_total})"


def describe_event(event: ProgressEvent) -> str:
    """Human readable text for one job event."""
    if event.type is EventType.PROGRESS:
        return f"{event.current_file or ''}"
    if event.type is EventType.FILE_PROGRESS:
        copied = format_bytes(event.bytes_copied or 0)
        total = format_bytes(event.bytes_total or 0)
        text = f"{event.current_file or ''} {copied}/{total}"
        if event.bytes_per_second:
            text += f" @ {format_bytes(event.bytes_per_second)}/s"
        return text
    return event.message or ""


class ProgressTracker:
    """Utility to emit progress log lines with consistent formatting."""

    def __init__(
        self,
        total: int,
        *,
        width: int = 20,
        color: str | None = None,
        single_line: bool = False,
    ) -> None:
        self.total = max(int(total), 1)
        self.width = width
        self.current = 0
        self.color = color
        self._inline = bool(single_line)
        self._last_len = 0

    def _emit(self, logger, message: str) -> None:
        text = _truncate_to_fit(
            f"{format_progress(self.current, self.total, width=self.width, color=self.color)} {message}"
        )

        if self._inline:
            try:
                sys.stderr.write(f"\r{' ' * self._last_len}\r")
                sys.stderr.write(text)
                sys.stderr.flush()
                self._last_len = len(text)
            except OSError:
                self._inline = False
                logger.info(text)
        else:
            logger.info(text)

    def log(self, logger, message: str) -> None:
        self._emit(logger, message)

    def advance(
        self, logger, message: str, *, steps: int = 1, absolute: int | None = None
    ) -> None:
        if absolute is not None:
            self.current = max(0, min(self.total, absolute))
        else:
            self.current = max(0, min(self.total, self.current + steps))
        self._emit(logger, message)

    def complete(self, logger, message: str) -> None:
        self.current = self.total
        if self._inline:
            sys.stderr.write("\n")
            sys.stderr.flush()
            self._last_len = 0
            self._inline = False
        self._emit(logger, message)

    def handle_event(self, logger, event: ProgressEvent) -> None:
        """Render a job event; usable directly as a job sink via ``partial``."""
        if not event.is_terminal:
            self.advance(logger, describe_event(event), absolute=event.current - 1)
            return

        if event.type is EventType.ERROR:
            self.color = _RED
        else:
            self.color = _YELLOW if event.failed else _GREEN
        self.complete(logger, describe_event(event))
        for error in event.errors:
            logger.error("  %s", error)


def truncate_for_terminal(text: str) -> str:
    """Public wrapper for truncating text to terminal width.

    Args:
        text: Text to truncate

    Returns:
        Text truncated to fit terminal width
    """
    return _truncate_to_fit(text)


__all__ = [
    "format_bytes",
    "format_progress",
    "describe_event",
    "ProgressTracker",
    "truncate_for_terminal",
]
