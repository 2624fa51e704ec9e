"""Run the mediashelf web server."""

from __future__ import annotations

import logging

from ..config import Settings
from .app import create_app

_LOGGER = logging.getLogger(__name__)


def run_webgui(settings: Settings, *, debug: bool = False) -> None:
    """Run the web server until interrupted."""
    try:
        app = create_app(settings)
        _LOGGER.info("Starting web server on http://%s:%s", settings.web_host, settings.web_port)
        app.run(
            host=settings.web_host,
            port=settings.web_port,
            debug=debug,
            threaded=True,
            use_reloader=False,
        )
    except OSError as exc:
        _LOGGER.error("Failed to start web server: %s", exc)
        raise
