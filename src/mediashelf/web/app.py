"""Flask application factory."""

import logging

from flask import Flask

from ..config import Settings, settings_from_env
from .routes import register_blueprints
from .services.status_tracker import get_status_tracker

_logger = logging.getLogger(__name__)

SETTINGS_KEY = "MEDIASHELF_SETTINGS"


def create_app(settings: Settings | None = None) -> Flask:
    """Create and configure Flask application."""
    app = Flask(__name__)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    if settings is None:
        settings = settings_from_env()
    app.config[SETTINGS_KEY] = settings

    for pane, root in (
        ("downloads", settings.paths.download_root),
        ("media", settings.paths.media_root),
    ):
        if root is None:
            _logger.warning("No root configured for pane '%s'", pane)
        else:
            _logger.info("Pane '%s' -> %s", pane, root)

    register_blueprints(app, get_status_tracker())

    return app
