"""Route blueprints registration."""

from flask import Flask

from .api import api_bp
from .files import files_bp


def register_blueprints(app: Flask, tracker) -> None:
    """Register all blueprints."""
    app.register_blueprint(api_bp)
    app.register_blueprint(files_bp)
