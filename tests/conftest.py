"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from mediashelf.config import Paths
from mediashelf.core.events import EventCollector


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Create a temporary directory for tests.

    Args:
        tmp_path: pytest's temporary directory fixture

    Returns:
        Path to temporary directory
    """
    return tmp_path


@pytest.fixture
def downloads_dir(temp_dir: Path) -> Path:
    """Create the downloads pane root.

    Args:
        temp_dir: Temporary directory fixture

    Returns:
        Path to downloads directory
    """
    downloads = temp_dir / "downloads"
    downloads.mkdir()
    return downloads


@pytest.fixture
def media_dir(temp_dir: Path) -> Path:
    """Create the media pane root.

    Args:
        temp_dir: Temporary directory fixture

    Returns:
        Path to media directory
    """
    media = temp_dir / "media"
    media.mkdir()
    return media


@pytest.fixture
def paths(downloads_dir: Path, media_dir: Path) -> Paths:
    return Paths(download_root=downloads_dir, media_root=media_dir)


@pytest.fixture
def collect() -> EventCollector:
    """Event sink that records everything a job emits."""
    return EventCollector()


@pytest.fixture
def make_file():
    """Create a file of a given size, creating parent directories."""

    def _make(path: Path, size: int = 10, *, fill: bytes = b"x") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes((fill * size)[:size])
        return path

    return _make
