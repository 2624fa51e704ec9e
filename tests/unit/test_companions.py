from __future__ import annotations

from pathlib import Path

from mediashelf.core.companions import compute_new_path, find_companions, relocate_companions
from mediashelf.core.permissions import DirectoryCache


def test_find_companions_matches_base_and_tagged_names(downloads_dir: Path, make_file) -> None:
    video = make_file(downloads_dir / "Show.mkv")
    make_file(downloads_dir / "Show.en.srt")
    make_file(downloads_dir / "Show.srt")
    make_file(downloads_dir / "Show.forced.it.ass")
    make_file(downloads_dir / "Other.srt")
    make_file(downloads_dir / "ShowExtra.srt")
    make_file(downloads_dir / "Show.nfo")

    names = [path.name for path in find_companions(video)]

    assert names == ["Show.en.srt", "Show.forced.it.ass", "Show.srt"]


def test_find_companions_missing_directory(tmp_path: Path) -> None:
    assert find_companions(tmp_path / "gone" / "Show.mkv") == []


def test_compute_new_path_keeps_tag() -> None:
    new = compute_new_path(
        Path("/d/Show.en.srt"),
        Path("/d/Show.mkv"),
        Path("/m/Show/Season 01/Episode.mkv"),
    )
    assert new == Path("/m/Show/Season 01/Episode.en.srt")

    plain = compute_new_path(Path("/d/Show.srt"), Path("/d/Show.mkv"), Path("/d/Episode.mkv"))
    assert plain == Path("/d/Episode.srt")


def test_relocate_companions_rename(downloads_dir: Path, make_file) -> None:
    video = downloads_dir / "Show.mkv"
    subtitle = make_file(downloads_dir / "Show.en.srt")
    other = make_file(downloads_dir / "Other.srt")

    errors = relocate_companions(
        [subtitle],
        video,
        downloads_dir / "Episode.mkv",
        operation="rename",
        overwrite=False,
        dest_root=downloads_dir,
        cache=DirectoryCache(),
    )

    assert errors == []
    assert not subtitle.exists()
    assert (downloads_dir / "Episode.en.srt").exists()
    assert other.exists()


def test_relocate_companions_copy_creates_directories(
    downloads_dir: Path, media_dir: Path, make_file
) -> None:
    subtitle = make_file(downloads_dir / "Show.en.srt")

    errors = relocate_companions(
        [subtitle],
        downloads_dir / "Show.mkv",
        media_dir / "Show" / "Season 01" / "Show.mkv",
        operation="copy",
        overwrite=False,
        dest_root=media_dir,
        cache=DirectoryCache(),
    )

    assert errors == []
    assert subtitle.exists()
    assert (media_dir / "Show" / "Season 01" / "Show.en.srt").exists()


def test_relocate_companions_skips_existing_without_overwrite(
    downloads_dir: Path, media_dir: Path, make_file
) -> None:
    subtitle = make_file(downloads_dir / "Show.srt", 3, fill=b"n")
    existing = make_file(media_dir / "Show.srt", 3, fill=b"o")

    errors = relocate_companions(
        [subtitle],
        downloads_dir / "Show.mkv",
        media_dir / "Show.mkv",
        operation="move",
        overwrite=False,
        dest_root=media_dir,
        cache=DirectoryCache(),
    )

    assert errors == []
    assert subtitle.exists()
    assert existing.read_bytes() == b"ooo"


def test_relocate_companions_reports_failures(downloads_dir: Path) -> None:
    missing = downloads_dir / "Show.en.srt"

    errors = relocate_companions(
        [missing],
        downloads_dir / "Show.mkv",
        downloads_dir / "Episode.mkv",
        operation="rename",
        overwrite=False,
        dest_root=downloads_dir,
        cache=DirectoryCache(),
    )

    assert len(errors) == 1
    assert errors[0].startswith("Subtitle failed: Show.en.srt - ")
