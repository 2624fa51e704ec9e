"""Job status tracking for the web server."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from ..core.events import EventType, ProgressEvent

_HISTORY_LIMIT = 50


@dataclass
class JobRecord:
    """What the server knows about one job it has streamed."""

    id: str
    operation: str
    pane: str
    total: int
    status: str = "running"  # running, completed, failed, cancelled
    current: int = 0
    current_file: str | None = None
    completed: int = 0
    failed: int = 0
    message: str | None = None
    errors: list[str] = field(default_factory=list)
    started: datetime = field(default_factory=datetime.now)
    finished: datetime | None = None

    @property
    def duration_seconds(self) -> float:
        end = self.finished or datetime.now()
        return (end - self.started).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert record to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "operation": self.operation,
            "pane": self.pane,
            "total": self.total,
            "status": self.status,
            "current": self.current,
            "current_file": self.current_file,
            "completed": self.completed,
            "failed": self.failed,
            "message": self.message,
            "errors": self.errors[:50],
            "started": self.started.isoformat(),
            "finished": self.finished.isoformat() if self.finished else None,
            "duration_seconds": round(self.duration_seconds, 3),
        }


class JobStatusTracker:
    """Thread-safe view of running and recently finished jobs."""

    def __init__(self, history_limit: int = _HISTORY_LIMIT) -> None:
        self._lock = threading.Lock()
        self._active: dict[str, JobRecord] = {}
        self._history: list[JobRecord] = []
        self._history_limit = history_limit

    def start_job(self, operation: str, pane: str, total: int) -> str:
        """Register a new job and return its id."""
        record = JobRecord(id=uuid.uuid4().hex, operation=operation, pane=pane, total=total)
        with self._lock:
            self._active[record.id] = record
        return record.id

    def record_event(self, job_id: str, event: ProgressEvent) -> None:
        """Fold a streamed event into the job's record."""
        with self._lock:
            record = self._active.get(job_id)
            if record is None:
                return
            record.current = event.current
            record.completed = event.completed
            record.failed = event.failed
            if event.current_file:
                record.current_file = event.current_file
            if not event.is_terminal:
                return
            record.message = event.message
            record.errors = list(event.errors)
            record.status = "failed" if event.type is EventType.ERROR else "completed"
            self._finish_locked(record)

    def abandon_job(self, job_id: str) -> None:
        """Mark a job whose stream ended without a terminal event."""
        with self._lock:
            record = self._active.get(job_id)
            if record is None:
                return
            record.status = "cancelled"
            record.message = record.message or "Client disconnected"
            self._finish_locked(record)

    def _finish_locked(self, record: JobRecord) -> None:
        record.finished = datetime.now()
        self._active.pop(record.id, None)
        self._history.append(record)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit:]

    def get_status(self) -> dict[str, Any]:
        """Snapshot of active jobs and history, newest last."""
        with self._lock:
            active = [replace(record, errors=list(record.errors)) for record in self._active.values()]
            history = [replace(record, errors=list(record.errors)) for record in self._history]
        return {
            "active": [record.to_dict() for record in active],
            "history": [record.to_dict() for record in history],
        }

    def reset(self) -> None:
        with self._lock:
            self._active.clear()
            self._history.clear()


_status_tracker = JobStatusTracker()


def get_status_tracker() -> JobStatusTracker:
    """Get the global status tracker instance."""
    return _status_tracker


__all__ = [
    "JobRecord",
    "JobStatusTracker",
    "get_status_tracker",
]
