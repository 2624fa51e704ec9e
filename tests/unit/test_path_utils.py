import os
import unittest
import tempfile
from pathlib import Path

from mediashelf.core.path_utils import (
    bare_filename,
    is_inside_root,
    is_season_directory,
    sanitize_relative_path,
    split_relative,
    validate_file_name,
    validate_path,
)


class TestValidatePath(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(self._tmp.name).resolve()
        self.root = self.base / "downloads"
        self.root.mkdir()
        (self.root / "Show").mkdir()
        (self.root / "Show" / "episode.mkv").write_bytes(b"data")

    def tearDown(self):
        self._tmp.cleanup()

    def test_existing_file_resolves_inside_root(self):
        result = validate_path(self.root, "Show/episode.mkv")
        self.assertTrue(result.valid)
        self.assertEqual(result.absolute_path, self.root / "Show" / "episode.mkv")

    def test_leading_slash_and_backslashes_are_relative(self):
        result = validate_path(self.root, "\\Show\\episode.mkv")
        self.assertTrue(result.valid)
        self.assertEqual(result.absolute_path, self.root / "Show" / "episode.mkv")

    def test_new_file_in_existing_directory(self):
        result = validate_path(self.root, "Show/new.mkv")
        self.assertTrue(result.valid)
        self.assertEqual(result.absolute_path, self.root / "Show" / "new.mkv")

    def test_traversal_rejected(self):
        result = validate_path(self.root, "../outside.mkv")
        self.assertFalse(result.valid)
        self.assertEqual(result.error, "Path traversal detected")

    def test_null_byte_rejected(self):
        result = validate_path(self.root, "Show/ep\0.mkv")
        self.assertFalse(result.valid)
        self.assertEqual(result.error, "Invalid path characters")

    def test_missing_parent_rejected(self):
        result = validate_path(self.root, "Nope/ep.mkv")
        self.assertFalse(result.valid)
        self.assertEqual(result.error, "Parent directory does not exist")

    @unittest.skipIf(os.name == "nt", "symlinks need privileges on Windows")
    def test_symlink_escape_rejected(self):
        outside = self.base / "outside"
        outside.mkdir()
        (outside / "secret.mkv").write_bytes(b"secret")
        os.symlink(outside, self.root / "link")

        result = validate_path(self.root, "link/secret.mkv")
        self.assertFalse(result.valid)
        self.assertEqual(result.error, "Symlink escape detected")


class TestPathHelpers(unittest.TestCase):
    def test_is_inside_root_requires_separator(self):
        self.assertTrue(is_inside_root("/data/media/Show", "/data/media"))
        self.assertTrue(is_inside_root("/data/media", "/data/media"))
        self.assertFalse(is_inside_root("/data/media2/Show", "/data/media"))
        self.assertFalse(is_inside_root("/data/media/../downloads", "/data/media"))

    def test_sanitize_relative_path(self):
        self.assertEqual(sanitize_relative_path("/../Show//./Season 01/"), "Show/Season 01")
        self.assertEqual(sanitize_relative_path("../.."), "")

    def test_split_and_bare_filename(self):
        self.assertEqual(split_relative("Show/Season 01/ep.mkv"), (["Show", "Season 01"], "ep.mkv"))
        self.assertEqual(split_relative("ep.mkv"), ([], "ep.mkv"))
        self.assertEqual(bare_filename("Show\\ep.mkv"), "ep.mkv")

    def test_validate_file_name(self):
        self.assertIsNone(validate_file_name("Movie (2020)"))
        self.assertIsNotNone(validate_file_name("   "))
        self.assertIsNotNone(validate_file_name("a:b"))
        self.assertIsNotNone(validate_file_name("CON"))
        self.assertIsNotNone(validate_file_name("trailing."))
        self.assertIsNotNone(validate_file_name("x" * 256))

    def test_season_directory_detection(self):
        for name in ("Season 1", "Season 01", "season02", "SEASON 10"):
            self.assertTrue(is_season_directory(name), name)
        for name in ("Specials", "Extras", "Show"):
            self.assertFalse(is_season_directory(name), name)


if __name__ == "__main__":
    unittest.main()
