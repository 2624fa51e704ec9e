"""Batch orchestration: run a transfer job item by item and stream events."""

from __future__ import annotations

import logging
import os
import queue
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator

from ..config import Ownership, Paths
from ..constants import (
    OPERATION_COPY,
    OPERATION_RENAME,
    PANE_DOWNLOADS,
    PANE_MEDIA,
)
from .companions import find_companions, is_video_file, relocate_companions
from .events import EventSink, EventType, ProgressEvent, RateMeter, build_summary
from .file_operations import TransferOutcome, transfer_item
from .folders import reorganize
from .job import JobCancelled, JobContext, TransferItem, TransferJob
from .path_utils import bare_filename, is_inside_root, sanitize_relative_path, validate_path
from .permissions import DirectoryCache, set_file_permissions

_logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"


@dataclass(frozen=True)
class JobResult:
    """Outcome of a job, mirroring its terminal event.

    Attributes:
        status: ``completed``, ``failed`` (fatal error) or ``cancelled``
        completed: Items transferred successfully
        failed: Failed items plus folder errors
        errors: Every recorded error message
        message: One-line summary
    """

    status: str
    completed: int
    failed: int
    errors: tuple[str, ...]
    message: str

    @property
    def ok(self) -> bool:
        return self.status == STATUS_COMPLETED and self.failed == 0


def resolve_roots(job: TransferJob, paths: Paths) -> tuple[Path, Path]:
    """Return ``(source_root, destination_root)`` for a job.

    Renames stay inside the selected pane; copies and moves always go from
    the downloads pane to the media pane.
    """
    if job.operation == OPERATION_RENAME:
        root = paths.root_for(job.pane)
        return root, root
    return paths.root_for(PANE_DOWNLOADS), paths.root_for(PANE_MEDIA)


def _destination_for(
    ctx: JobContext,
    item: TransferItem,
    source: Path,
    source_root: Path,
    dest_root: Path,
) -> Path | None:
    if ctx.job.operation == OPERATION_RENAME:
        new_name = bare_filename(item.destination_path)
        if not new_name or new_name == "." or ".." in new_name:
            ctx.fail(f"Invalid filename: {item.destination_path}")
            return None
        dest = source.parent / new_name
        root = source_root
    else:
        sanitized = sanitize_relative_path(item.destination_path)
        if not sanitized:
            ctx.fail(f"Invalid destination: {item.destination_path}")
            return None
        dest = dest_root / sanitized
        root = dest_root

    if not is_inside_root(dest, root) or os.path.abspath(dest) == os.path.abspath(root):
        ctx.fail(f"Invalid path: {item.destination_path}")
        return None
    return dest


def _emit_instant(ctx: JobContext, index: int, name: str, size: int) -> None:
    ctx.emit(
        EventType.FILE_PROGRESS,
        current=index,
        current_file=name,
        bytes_copied=size,
        bytes_total=size,
        bytes_per_second=0,
    )


def _process_item(
    ctx: JobContext,
    index: int,
    item: TransferItem,
    source_root: Path,
    dest_root: Path,
    clock: Callable[[], float],
) -> None:
    job = ctx.job
    name = item.display_name

    validation = validate_path(source_root, item.source_path)
    if not validation.valid or validation.absolute_path is None:
        _logger.warning("Invalid source %s: %s", item.source_path, validation.error)
        ctx.fail(f"Invalid source: {item.source_path}")
        return
    source = validation.absolute_path

    source_is_dir = source.is_dir()
    size = 0 if source_is_dir else source.stat().st_size

    # Discover subtitles now; for moves and renames the source is gone afterwards
    companions = (
        find_companions(source) if not source_is_dir and is_video_file(source) else []
    )

    dest = _destination_for(ctx, item, source, source_root, dest_root)
    if dest is None:
        return

    same_location = os.path.abspath(source) == os.path.abspath(dest)
    if same_location and job.operation != OPERATION_COPY:
        _logger.info("%s is already in place", name)
        _emit_instant(ctx, index, name, size)
        ctx.completed += 1
        return

    if os.path.lexists(dest) and not job.overwrite:
        _logger.warning("Destination %s already exists, skipping", dest)
        ctx.fail(f"Already exists: {name}")
        return

    if job.operation != OPERATION_RENAME:
        ctx.cache.ensure(dest.parent, dest_root)

    meter = RateMeter(clock=clock)

    def on_progress(copied: int, total: int) -> None:
        rate = meter.sample(copied, total)
        if rate is None:
            return
        ctx.emit(
            EventType.FILE_PROGRESS,
            current=index,
            current_file=name,
            bytes_copied=copied,
            bytes_total=total,
            bytes_per_second=rate,
        )

    outcome = transfer_item(
        source,
        dest,
        operation=job.operation,
        overwrite=job.overwrite,
        dest_root=dest_root,
        ownership=ctx.ownership,
        on_progress=on_progress,
    )
    if outcome is not TransferOutcome.COPIED:
        _emit_instant(ctx, index, name, size)

    if not source_is_dir:
        set_file_permissions(dest, ctx.ownership)

    if companions:
        ctx.errors.extend(
            relocate_companions(
                companions,
                source,
                dest,
                operation=job.operation,
                overwrite=job.overwrite,
                dest_root=dest_root,
                cache=ctx.cache,
            )
        )

    _logger.info("%s %s -> %s", job.operation, source.name, dest)
    ctx.completed += 1


def run_job(
    job: TransferJob,
    paths: Paths,
    sink: EventSink,
    *,
    ownership: Ownership | None = None,
    cancel_event: threading.Event | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> JobResult:
    """Execute ``job`` sequentially, sending every event to ``sink``.

    Failures of single items or folders are recorded and the job carries on.
    The last event is always exactly one ``complete`` or ``error`` event.

    Args:
        job: The batch to run
        paths: Pane roots
        sink: Receives events in order; must not block indefinitely
        ownership: Optional owner for everything created
        cancel_event: Checked between items and folder phases
        clock: Monotonic clock used for rate computation

    Returns:
        Summary matching the terminal event
    """
    ctx = JobContext(
        job=job,
        sink=sink,
        cache=DirectoryCache(ownership),
        cancel_event=cancel_event,
    )
    total = job.total

    try:
        source_root, dest_root = resolve_roots(job, paths)
        _logger.info(
            "Starting %s of %s item(s) (overwrite=%s)", job.operation, total, job.overwrite
        )

        for index, item in enumerate(job.items, 1):
            ctx.check_cancelled()
            ctx.emit(EventType.PROGRESS, current=index, current_file=item.display_name)
            try:
                _process_item(ctx, index, item, source_root, dest_root, clock)
            except Exception as exc:
                _logger.error("Failed to %s %s: %s", job.operation, item.source_path, exc)
                ctx.fail(f"Failed: {bare_filename(item.source_path) or 'file'} - {exc}")

        if job.has_folder_work:
            reorganize(job, source_root, ctx)
    except JobCancelled:
        message = f"Cancelled after {ctx.completed + ctx.failed} of {total} item(s)"
        _logger.warning(message)
        errors = ctx.errors + ctx.folder_errors
        ctx.emit(
            EventType.COMPLETE,
            current=total,
            failed=ctx.failed + len(ctx.folder_errors),
            errors=errors,
            message=message,
        )
        return JobResult(
            STATUS_CANCELLED,
            ctx.completed,
            ctx.failed + len(ctx.folder_errors),
            tuple(errors),
            message,
        )
    except Exception as exc:
        _logger.exception("Job failed: %s", exc)
        message = "Operation failed"
        errors = [str(exc) or exc.__class__.__name__]
        ctx.emit(
            EventType.ERROR,
            current=0,
            completed=0,
            failed=total,
            errors=errors,
            message=message,
        )
        return JobResult(STATUS_FAILED, 0, total, tuple(errors), message)

    folder_failures = len(ctx.folder_errors)
    errors = ctx.errors + ctx.folder_errors
    message = build_summary(ctx.failed, folder_failures)
    ctx.emit(
        EventType.COMPLETE,
        current=total,
        failed=ctx.failed + folder_failures,
        errors=errors,
        message=message,
    )
    _logger.info(
        "Job finished: %s completed, %s failed, %s folder error(s)",
        ctx.completed,
        ctx.failed,
        folder_failures,
    )
    return JobResult(
        STATUS_COMPLETED,
        ctx.completed,
        ctx.failed + folder_failures,
        tuple(errors),
        message,
    )


def iter_job_events(
    job: TransferJob,
    paths: Paths,
    *,
    ownership: Ownership | None = None,
) -> Iterator[ProgressEvent]:
    """Run ``job`` on a worker thread and yield its events as they happen.

    Closing the generator early (the client went away) cancels the job
    before its next item.
    """
    events: queue.Queue[ProgressEvent | None] = queue.Queue()
    cancel_event = threading.Event()

    def worker() -> None:
        try:
            run_job(job, paths, events.put, ownership=ownership, cancel_event=cancel_event)
        finally:
            events.put(None)

    thread = threading.Thread(target=worker, name="mediashelf-job", daemon=True)
    thread.start()
    try:
        while True:
            event = events.get()
            if event is None:
                break
            yield event
    finally:
        cancel_event.set()


__all__ = [
    "STATUS_COMPLETED",
    "STATUS_FAILED",
    "STATUS_CANCELLED",
    "JobResult",
    "resolve_roots",
    "run_job",
    "iter_job_events",
]
