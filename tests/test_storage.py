"""Tests for FileStorage: naming, allow-lists, size limit and safe deletes."""

import re
import tempfile
import unittest
from pathlib import Path

from shareai.core.errors import ValidationError
from shareai.services.storage import AVATARS, READMES, FileStorage, UploadedFile


class TestFileStorage(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.storage = FileStorage(self.tmp.name, "http://cdn.example/", max_bytes=16)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_save_names_file_by_date_and_uuid(self) -> None:
        path = self.storage.save(UploadedFile("me.PNG", "image/png", b"png"), AVATARS)
        self.assertRegex(path, r"^avatars/\d{8}_[0-9a-f\-]{36}\.png$")
        self.assertEqual((Path(self.tmp.name) / path).read_bytes(), b"png")

    def test_readme_by_extension_when_content_type_generic(self) -> None:
        path = self.storage.save(
            UploadedFile("README.md", "application/octet-stream", b"# hi"), READMES
        )
        self.assertTrue(re.match(r"^readme/.*\.md$", path))

    def test_disallowed_type(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.storage.save(UploadedFile("x.sh", "text/x-shellscript", b"ls"), AVATARS)
        self.assertEqual(ctx.exception.message, "file type not allowed")

    def test_too_large(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.storage.save(UploadedFile("a.png", "image/png", b"x" * 17), AVATARS)
        self.assertEqual(ctx.exception.message, "file size exceeds maximum limit of 16 bytes")

    def test_empty(self) -> None:
        with self.assertRaises(ValidationError):
            self.storage.save(UploadedFile("a.png", "image/png", b""), AVATARS)

    def test_url(self) -> None:
        self.assertEqual(self.storage.url(""), "")
        self.assertEqual(
            self.storage.url("avatars/a.png"), "http://cdn.example/uploads/avatars/a.png"
        )
        self.assertEqual(self.storage.url("https://x.example/a.png"), "https://x.example/a.png")

    def test_delete_removes_file_and_ignores_missing(self) -> None:
        path = self.storage.save(UploadedFile("a.png", "image/png", b"png"), AVATARS)
        self.storage.delete(path)
        self.assertFalse((Path(self.tmp.name) / path).exists())
        self.storage.delete(path)
        self.storage.delete("")

    def test_delete_refuses_paths_outside_root(self) -> None:
        outside = Path(self.tmp.name).parent / "keep-me.txt"
        outside.write_text("x")
        try:
            self.storage.delete("../keep-me.txt")
            self.assertTrue(outside.exists())
        finally:
            outside.unlink()


if __name__ == "__main__":
    unittest.main()
