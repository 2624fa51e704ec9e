"""Batch transfer endpoint streaming job events as NDJSON."""

import logging

from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context

from ...core.batch import iter_job_events
from ...core.job import JobRequestError, TransferJob
from ..services.status_tracker import get_status_tracker

_logger = logging.getLogger(__name__)

files_bp = Blueprint('files', __name__, url_prefix='/api/files')

NDJSON_MIMETYPE = "application/x-ndjson"


@files_bp.route("/batch-transfer", methods=["POST"])
def batch_transfer():
    """Run a copy, move or rename job and stream its progress.

    Each line of the response body is one JSON event. The stream ends
    with exactly one ``complete`` or ``error`` event.
    """
    settings = current_app.config["MEDIASHELF_SETTINGS"]
    try:
        job = TransferJob.from_request(request.get_json(silent=True))
    except JobRequestError as exc:
        return jsonify({"error": str(exc)}), 400

    tracker = get_status_tracker()
    job_id = tracker.start_job(job.operation, job.pane, job.total)
    _logger.info("Job %s: %s of %s item(s) in %s", job_id, job.operation, job.total, job.pane)

    def generate():
        finished = False
        try:
            for event in iter_job_events(job, settings.paths, ownership=settings.ownership):
                tracker.record_event(job_id, event)
                finished = finished or event.is_terminal
                yield event.to_json_line()
        finally:
            if not finished:
                _logger.warning("Job %s stream closed before completion", job_id)
                tracker.abandon_job(job_id)

    response = Response(stream_with_context(generate()), mimetype=NDJSON_MIMETYPE)
    response.headers["Cache-Control"] = "no-cache"
    response.headers["X-Accel-Buffering"] = "no"
    return response
