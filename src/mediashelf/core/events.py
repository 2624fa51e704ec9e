"""Progress events streamed to the caller while a job runs."""

from __future__ import annotations

import enum
import json
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from ..constants import PROGRESS_THROTTLE_SECONDS, RATE_SMOOTHING_FACTOR


class EventType(str, enum.Enum):
    PROGRESS = "progress"
    FILE_PROGRESS = "file_progress"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressEvent:
    """One event of a job's output stream.

    ``errors`` is a snapshot of the job's error list at emission time.
    """

    type: EventType
    current: int
    total: int
    completed: int
    failed: int
    errors: tuple[str, ...] = ()
    current_file: str | None = None
    message: str | None = None
    bytes_copied: int | None = None
    bytes_total: int | None = None
    bytes_per_second: int | None = None

    @property
    def is_terminal(self) -> bool:
        return self.type in (EventType.COMPLETE, EventType.ERROR)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire shape, leaving out unset optional fields."""
        data: dict[str, Any] = {
            "type": self.type.value,
            "current": self.current,
            "total": self.total,
            "completed": self.completed,
            "failed": self.failed,
            "errors": list(self.errors),
        }
        optional = {
            "currentFile": self.current_file,
            "message": self.message,
            "bytesCopied": self.bytes_copied,
            "bytesTotal": self.bytes_total,
            "bytesPerSecond": self.bytes_per_second,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data

    def to_json_line(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False) + "\n"


EventSink = Callable[[ProgressEvent], None]


class RateMeter:
    """Throttle byte progress and smooth the transfer rate.

    ``sample`` returns ``None`` while updates are throttled, otherwise the
    exponentially weighted rate in bytes per second. The final update
    (``copied == total``) is never throttled.
    """

    def __init__(
        self,
        *,
        interval: float = PROGRESS_THROTTLE_SECONDS,
        smoothing: float = RATE_SMOOTHING_FACTOR,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.interval = interval
        self.smoothing = smoothing
        self._clock = clock
        self._last_emit: float | None = None
        self._last_sample_time = clock()
        self._last_bytes = 0
        self._smoothed: float | None = None

    @property
    def rate(self) -> int:
        return round(self._smoothed or 0.0)

    def sample(self, copied: int, total: int) -> int | None:
        now = self._clock()
        if (
            self._last_emit is not None
            and now - self._last_emit < self.interval
            and copied != total
        ):
            return None

        elapsed = now - self._last_sample_time
        instant = (copied - self._last_bytes) / elapsed if elapsed > 0 else 0.0
        if self._smoothed is None:
            self._smoothed = instant
        else:
            self._smoothed = self.smoothing * instant + (1 - self.smoothing) * self._smoothed

        self._last_emit = now
        self._last_sample_time = now
        self._last_bytes = copied
        return self.rate


def build_summary(file_failures: int, folder_failures: int) -> str:
    """One-line summary for the terminal ``complete`` event."""
    if file_failures and folder_failures:
        return (
            f"Completed with {file_failures} file error(s) "
            f"and {folder_failures} folder error(s)"
        )
    if folder_failures:
        return f"Files processed, but {folder_failures} folder rename(s) failed"
    if file_failures:
        return f"Completed with {file_failures} error(s)"
    return "All files processed successfully"


@dataclass
class EventCollector:
    """Sink that keeps every event in memory (CLI and tests)."""

    events: list[ProgressEvent] = field(default_factory=list)

    def __call__(self, event: ProgressEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> list[ProgressEvent]:
        return [event for event in self.events if event.type is event_type]

    @property
    def terminal(self) -> ProgressEvent | None:
        return self.events[-1] if self.events and self.events[-1].is_terminal else None


__all__ = [
    "EventType",
    "ProgressEvent",
    "EventSink",
    "RateMeter",
    "build_summary",
    "EventCollector",
]
