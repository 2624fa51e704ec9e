from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace
from functools import partial
from pathlib import Path
from typing import Sequence

from . import __version__
from .config import ConfigurationError, Settings, load_settings
from .core import JobRequestError, TransferJob, run_job
from .core.batch import STATUS_FAILED
from .progress import ProgressTracker
from .web import run_webgui

_LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_FAILURES = 2


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Copy, move and rename media between the downloads and media libraries"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a TOML configuration file (default: environment only)",
    )
    parser.add_argument(
        "--download-root", type=Path, help="Override the downloads pane root"
    )
    parser.add_argument("--media-root", type=Path, help="Override the media pane root")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the root log level (default: from configuration, else INFO)",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the web server")
    serve.add_argument("--host", help="Host to bind (default: from configuration)")
    serve.add_argument("--port", type=int, help="Port to bind (default: from configuration)")

    run = commands.add_parser("run", help="Execute one job described by a JSON file")
    run.add_argument("job_file", type=Path, metavar="JOB.json")
    run.add_argument(
        "--single-line",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Redraw the progress bar in place instead of logging each step",
    )
    return parser.parse_args(argv)


def load_and_merge_settings(args: argparse.Namespace) -> Settings:
    settings = load_settings(args.config)

    paths = settings.paths
    if args.download_root is not None:
        paths = replace(paths, download_root=args.download_root.resolve())
    if args.media_root is not None:
        paths = replace(paths, media_root=args.media_root.resolve())

    overrides = {"paths": paths}
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if getattr(args, "host", None):
        overrides["web_host"] = args.host
    if getattr(args, "port", None) is not None:
        if not 0 < args.port < 65536:
            raise ConfigurationError("port must be between 1 and 65535")
        overrides["web_port"] = args.port
    return replace(settings, **overrides)


def _load_job(job_file: Path) -> TransferJob:
    try:
        payload = json.loads(job_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise JobRequestError(f"{job_file} is not valid JSON: {exc}") from exc
    return TransferJob.from_request(payload)


def run_job_file(settings: Settings, job_file: Path, *, single_line: bool = False) -> int:
    try:
        job = _load_job(job_file)
    except (JobRequestError, OSError) as exc:
        _LOGGER.error("Cannot load job: %s", exc)
        return EXIT_FATAL

    tracker = ProgressTracker(job.total, single_line=single_line)
    result = run_job(
        job,
        settings.paths,
        partial(tracker.handle_event, _LOGGER),
        ownership=settings.ownership,
    )
    if result.status == STATUS_FAILED:
        return EXIT_FATAL
    return EXIT_OK if result.ok else EXIT_FAILURES


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level or "INFO"), format="%(message)s")

    try:
        settings = load_and_merge_settings(args)
    except (ConfigurationError, FileNotFoundError) as exc:
        _LOGGER.error("Configuration error: %s", exc)
        return EXIT_FATAL

    logging.getLogger().setLevel(getattr(logging, settings.log_level))
    _LOGGER.debug(
        "Using config: %s | downloads=%s, media=%s",
        args.config,
        settings.paths.download_root,
        settings.paths.media_root,
    )

    if args.command == "serve":
        try:
            run_webgui(settings)
        except OSError:
            return EXIT_FATAL
        return EXIT_OK

    return run_job_file(settings, args.job_file, single_line=args.single_line)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
