from __future__ import annotations

import json
from pathlib import Path

import pytest

from mediashelf.config import Paths, Settings
from mediashelf.web import create_app, get_status_tracker


@pytest.fixture
def client(paths: Paths):
    get_status_tracker().reset()
    app = create_app(Settings(paths=paths))
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client
    get_status_tracker().reset()


def _events(response) -> list[dict]:
    return [json.loads(line) for line in response.get_data(as_text=True).splitlines() if line]


def test_health(client) -> None:
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_batch_transfer_streams_ndjson(client, downloads_dir: Path, media_dir: Path, make_file) -> None:
    make_file(downloads_dir / "Show.S01E01.mkv", 500)

    response = client.post(
        "/api/files/batch-transfer",
        json={
            "operation": "copy",
            "files": [
                {
                    "sourcePath": "Show.S01E01.mkv",
                    "destinationPath": "Show/Season 01/Show.S01E01.mkv",
                }
            ],
        },
    )

    assert response.status_code == 200
    assert response.mimetype == "application/x-ndjson"
    events = _events(response)
    assert events[0]["type"] == "progress"
    assert events[0]["currentFile"] == "Show.S01E01.mkv"
    assert events[-1]["type"] == "complete"
    assert events[-1]["completed"] == 1
    assert events[-1]["failed"] == 0
    assert (media_dir / "Show" / "Season 01" / "Show.S01E01.mkv").stat().st_size == 500

    history = client.get("/api/status").get_json()["history"]
    assert history[-1]["status"] == "completed"
    assert history[-1]["completed"] == 1


def test_batch_transfer_source_paths_shape(client, downloads_dir: Path, media_dir: Path, make_file) -> None:
    make_file(downloads_dir / "in" / "Movie.mkv")

    response = client.post(
        "/api/files/batch-transfer",
        json={"operation": "move", "sourcePaths": ["in/Movie.mkv"], "destinationFolder": "Movies"},
    )

    assert _events(response)[-1]["type"] == "complete"
    assert (media_dir / "Movies" / "Movie.mkv").exists()
    assert not (downloads_dir / "in" / "Movie.mkv").exists()


@pytest.mark.parametrize(
    "body",
    [
        {"operation": "copy"},
        {"operation": "explode", "files": [{"sourcePath": "a", "destinationPath": "b"}]},
        {"operation": "copy", "overwrite": 1, "files": [{"sourcePath": "a", "destinationPath": "b"}]},
    ],
)
def test_batch_transfer_rejects_malformed(client, body) -> None:
    response = client.post("/api/files/batch-transfer", json=body)

    assert response.status_code == 400
    assert "error" in response.get_json()


def test_batch_transfer_rejects_non_json(client) -> None:
    response = client.post("/api/files/batch-transfer", data="not json", content_type="text/plain")
    assert response.status_code == 400


def test_unconfigured_pane_streams_error(downloads_dir: Path, make_file) -> None:
    make_file(downloads_dir / "a.mkv")
    app = create_app(Settings(paths=Paths(download_root=downloads_dir)))

    response = app.test_client().post(
        "/api/files/batch-transfer",
        json={"operation": "copy", "files": [{"sourcePath": "a.mkv", "destinationPath": "a.mkv"}]},
    )

    events = _events(response)
    assert len(events) == 1
    assert events[0]["type"] == "error"
    assert events[0]["message"] == "Operation failed"
    assert events[0]["failed"] == 1


def test_system_health(client) -> None:
    data = client.get("/api/system-health").get_json()

    assert set(data["panes"]) == {"downloads", "media"}
    assert data["panes"]["downloads"]["total_gb"] > 0
    assert data["cpu_count"] >= 1


def test_system_health_unconfigured_pane() -> None:
    app = create_app(Settings())

    data = app.test_client().get("/api/system-health").get_json()

    assert "error" in data["panes"]["media"]
