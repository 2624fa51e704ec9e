"""API routes."""

import psutil
from flask import Blueprint, current_app, jsonify, request

from ...config import ConfigurationError
from ...constants import PANES
from ..services.status_tracker import get_status_tracker

api_bp = Blueprint('api', __name__, url_prefix='/api')

_GB = 1024**3


def _disk_usage(root) -> dict:
    usage = psutil.disk_usage(str(root))
    return {
        "path": str(root),
        "total_gb": round(usage.total / _GB, 2),
        "used_gb": round(usage.used / _GB, 2),
        "free_gb": round(usage.free / _GB, 2),
        "percent": usage.percent,
    }


@api_bp.route("/health")
def health():
    """Liveness probe."""
    return jsonify({"status": "ok"})


@api_bp.route("/status")
def status():
    """Get running jobs and recent history."""
    tracker = get_status_tracker()
    return jsonify(tracker.get_status())


@api_bp.route("/history")
def history():
    """Get finished jobs."""
    tracker = get_status_tracker()
    return jsonify(tracker.get_status().get("history", []))


@api_bp.route("/system-health")
def system_health():
    """Disk usage of both panes plus memory and cpu load."""
    settings = current_app.config["MEDIASHELF_SETTINGS"]
    panes = {}
    for pane in PANES:
        try:
            root = settings.paths.root_for(pane)
        except ConfigurationError as exc:
            panes[pane] = {"error": str(exc)}
            continue
        try:
            panes[pane] = _disk_usage(root)
        except OSError as exc:
            panes[pane] = {"path": str(root), "error": str(exc)}

    memory = psutil.virtual_memory()
    payload = {
        "panes": panes,
        "cpu_count": psutil.cpu_count(),
        "ram_total_gb": round(memory.total / _GB, 1),
        "ram_available_gb": round(memory.available / _GB, 1),
    }
    if request.args.get("cpu") == "1":
        payload["cpu_percent"] = psutil.cpu_percent(interval=0.1)
    return jsonify(payload)
