"""HTTP surface and job status tracking for mediashelf."""

from __future__ import annotations

from .app import create_app
from .status import get_status_tracker
from .webgui import run_webgui

__all__ = [
    "get_status_tracker",
    "create_app",
    "run_webgui",
]
