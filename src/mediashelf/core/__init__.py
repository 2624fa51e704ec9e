"""Core transfer engine for mediashelf."""

from __future__ import annotations

from .batch import JobResult, iter_job_events, run_job
from .companions import compute_new_path, find_companions, relocate_companions
from .events import EventCollector, EventType, ProgressEvent, RateMeter, build_summary
from .file_operations import (
    TransferOutcome,
    move_path,
    transfer_directory,
    transfer_file,
    transfer_item,
)
from .folders import RenamedPathMap, reorganize
from .job import (
    FolderCreateOp,
    FolderRenameOp,
    JobRequestError,
    SeasonFolderCreateOp,
    TransferItem,
    TransferJob,
)
from .path_utils import is_inside_root, validate_path
from .permissions import DirectoryCache, ensure_directory

__all__ = [
    # Orchestration
    "run_job",
    "iter_job_events",
    "JobResult",
    # Job model
    "TransferJob",
    "TransferItem",
    "FolderRenameOp",
    "FolderCreateOp",
    "SeasonFolderCreateOp",
    "JobRequestError",
    # Events
    "EventType",
    "ProgressEvent",
    "EventCollector",
    "RateMeter",
    "build_summary",
    # Transfers
    "TransferOutcome",
    "transfer_file",
    "transfer_directory",
    "transfer_item",
    "move_path",
    # Subtitles
    "find_companions",
    "compute_new_path",
    "relocate_companions",
    # Folders
    "RenamedPathMap",
    "reorganize",
    # Paths and directories
    "validate_path",
    "is_inside_root",
    "ensure_directory",
    "DirectoryCache",
]
