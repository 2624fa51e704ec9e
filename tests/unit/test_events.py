from __future__ import annotations

import json

from mediashelf.core.events import (
    EventCollector,
    EventType,
    ProgressEvent,
    RateMeter,
    build_summary,
)


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_rate_meter_throttles_and_smooths() -> None:
    clock = FakeClock()
    meter = RateMeter(clock=clock)

    clock.now = 0.05
    assert meter.sample(100, 1000) == 2000

    clock.now = 0.1
    assert meter.sample(200, 1000) is None

    clock.now = 0.25
    # 0.3 * 1000 + 0.7 * 2000
    assert meter.sample(300, 1000) == 1700


def test_rate_meter_never_throttles_completion() -> None:
    clock = FakeClock()
    meter = RateMeter(clock=clock)

    clock.now = 0.5
    meter.sample(100, 200)
    clock.now = 0.51
    assert meter.sample(200, 200) is not None


def test_rate_meter_zero_elapsed() -> None:
    meter = RateMeter(clock=FakeClock())
    assert meter.sample(0, 0) == 0


def test_event_wire_shape() -> None:
    event = ProgressEvent(
        type=EventType.FILE_PROGRESS,
        current=1,
        total=2,
        completed=0,
        failed=0,
        current_file="a.mkv",
        bytes_copied=10,
        bytes_total=20,
        bytes_per_second=5,
    )

    assert event.to_dict() == {
        "type": "file_progress",
        "current": 1,
        "total": 2,
        "completed": 0,
        "failed": 0,
        "errors": [],
        "currentFile": "a.mkv",
        "bytesCopied": 10,
        "bytesTotal": 20,
        "bytesPerSecond": 5,
    }
    line = event.to_json_line()
    assert line.endswith("\n")
    assert json.loads(line)["type"] == "file_progress"
    assert not event.is_terminal


def test_event_omits_unset_fields() -> None:
    event = ProgressEvent(type=EventType.COMPLETE, current=1, total=1, completed=1, failed=0, message="done")

    data = event.to_dict()
    assert "bytesCopied" not in data
    assert "currentFile" not in data
    assert data["message"] == "done"
    assert event.is_terminal


def test_build_summary() -> None:
    assert build_summary(0, 0) == "All files processed successfully"
    assert build_summary(2, 0) == "Completed with 2 error(s)"
    assert build_summary(0, 1) == "Files processed, but 1 folder rename(s) failed"
    assert build_summary(2, 1) == "Completed with 2 file error(s) and 1 folder error(s)"


def test_event_collector() -> None:
    collect = EventCollector()
    assert collect.terminal is None

    collect(ProgressEvent(type=EventType.PROGRESS, current=1, total=1, completed=0, failed=0))
    collect(ProgressEvent(type=EventType.COMPLETE, current=1, total=1, completed=1, failed=0))

    assert len(collect.of_type(EventType.PROGRESS)) == 1
    assert collect.terminal is collect.events[-1]
