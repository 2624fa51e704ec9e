from __future__ import annotations

import pytest

from mediashelf.core.job import (
    FolderCreateOp,
    FolderRenameOp,
    JobRequestError,
    SeasonFolderCreateOp,
    TransferItem,
    TransferJob,
)


def test_files_shape() -> None:
    job = TransferJob.from_request(
        {
            "operation": "rename",
            "pane": "media",
            "overwrite": True,
            "files": [{"sourcePath": "Show/a.mkv", "destinationPath": "Show/b.mkv"}],
            "folderRenames": [{"oldPath": "Show", "newName": "Show (2020)"}],
            "folderCreates": [
                {
                    "filePath": "Show/a.mkv",
                    "newFileName": "b.mkv",
                    "folderName": "Extras",
                    "subfolderName": "",
                }
            ],
            "seasonFolderCreates": [
                {"filePath": "Show/a.mkv", "newFileName": "b.mkv", "seasonFolder": "Season 01"}
            ],
        }
    )

    assert job.operation == "rename"
    assert job.pane == "media"
    assert job.overwrite is True
    assert job.items == (TransferItem("Show/a.mkv", "Show/b.mkv"),)
    assert job.folder_renames == (FolderRenameOp("Show", "Show (2020)"),)
    assert job.folder_creates == (FolderCreateOp("Show/a.mkv", "b.mkv", "Extras"),)
    assert job.season_folder_creates == (SeasonFolderCreateOp("Show/a.mkv", "b.mkv", "Season 01"),)
    assert job.total == 1
    assert job.has_folder_work


def test_source_paths_shape_keeps_names() -> None:
    job = TransferJob.from_request(
        {
            "operation": "copy",
            "sourcePaths": ["incoming/Movie.mkv", "Other.mkv"],
            "destinationFolder": "Movies",
        }
    )

    assert [item.destination_path for item in job.items] == ["Movies/Movie.mkv", "Movies/Other.mkv"]
    assert job.pane == "downloads"
    assert job.overwrite is False


def test_source_paths_into_root() -> None:
    job = TransferJob.from_request(
        {"operation": "move", "sourcePaths": ["a/Movie.mkv"], "destinationFolder": ""}
    )
    assert job.items[0].destination_path == "Movie.mkv"


def test_folder_work_only_counts_for_rename() -> None:
    job = TransferJob(
        items=(TransferItem("a.mkv", "b.mkv"),),
        operation="copy",
        folder_renames=(FolderRenameOp("A", "B"),),
    )
    assert not job.has_folder_work


@pytest.mark.parametrize(
    "payload",
    [
        None,
        [],
        {"operation": "copy"},
        {"operation": "copy", "files": []},
        {"operation": "delete", "files": [{"sourcePath": "a", "destinationPath": "b"}]},
        {"operation": "copy", "pane": "archive", "files": [{"sourcePath": "a", "destinationPath": "b"}]},
        {"operation": "copy", "overwrite": "yes", "files": [{"sourcePath": "a", "destinationPath": "b"}]},
        {"operation": "copy", "files": [{"sourcePath": "a"}]},
        {"operation": "copy", "files": ["a"]},
        {"operation": "copy", "sourcePaths": ["a"], "destinationFolder": 3},
        {"operation": "copy", "sourcePaths": [""], "destinationFolder": "x"},
        {
            "operation": "rename",
            "files": [{"sourcePath": "a", "destinationPath": "b"}],
            "folderRenames": {"oldPath": "A"},
        },
    ],
)
def test_malformed_requests(payload) -> None:
    with pytest.raises(JobRequestError):
        TransferJob.from_request(payload)


def test_display_name() -> None:
    assert TransferItem("in/a.mkv", "Show/Season 01/b.mkv").display_name == "b.mkv"
