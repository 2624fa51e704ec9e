"""Service layer shared by the web routes."""

from .status_tracker import get_status_tracker

__all__ = ["get_status_tracker"]
