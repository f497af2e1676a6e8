"""Tests for upload storage and artifact reclamation."""

from __future__ import annotations

import io
import re
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from app.errors import InvalidRequestError, ServiceError
from app.services.artifacts import artifact_file_name, discard_artifact, store_upload


class ArtifactStorageTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.uploads_dir = Path(self._tmp.name) / "uploads"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_file_name_keeps_lowercased_extension_only(self) -> None:
        name = artifact_file_name("../Quarterly Report.PDF")

        self.assertRegex(name, r"^\d{13}-\d{1,9}\.pdf$")
        self.assertEqual(Path(name).name, name)
        self.assertIsNone(re.search(r"\.", artifact_file_name("no-extension")))

    def test_store_upload_writes_bytes_under_uploads_dir(self) -> None:
        stored = store_upload(
            io.BytesIO(b"hello world"),
            original_name="notes.txt",
            media_type="text/plain",
            uploads_dir=self.uploads_dir,
            max_bytes=1024,
        )

        self.assertEqual(stored.path.parent, self.uploads_dir)
        self.assertEqual(stored.path.read_bytes(), b"hello world")
        self.assertEqual(stored.size, 11)
        self.assertEqual(stored.original_name, "notes.txt")
        self.assertEqual(stored.media_type, "text/plain")

    def test_oversized_upload_is_rejected_and_removed(self) -> None:
        with self.assertRaises(InvalidRequestError):
            store_upload(
                io.BytesIO(b"x" * 2048),
                original_name="big.txt",
                media_type=None,
                uploads_dir=self.uploads_dir,
                max_bytes=1024,
            )

        self.assertEqual(list(self.uploads_dir.iterdir()), [])

    def test_name_collision_is_a_service_error_and_keeps_the_existing_file(self) -> None:
        self.uploads_dir.mkdir()
        existing = self.uploads_dir / "1700000000000-42.pdf"
        existing.write_bytes(b"%PDF-existing")

        with mock.patch("app.services.artifacts.artifact_file_name", return_value=existing.name):
            with self.assertRaises(ServiceError) as ctx:
                store_upload(
                    io.BytesIO(b"%PDF-new"),
                    original_name="report.pdf",
                    media_type="application/pdf",
                    uploads_dir=self.uploads_dir,
                    max_bytes=1024,
                )

        self.assertTrue(str(ctx.exception).startswith("Failed to store upload:"))
        self.assertEqual(existing.read_bytes(), b"%PDF-existing")

    def test_read_failure_is_a_service_error_and_leaves_no_partial_file(self) -> None:
        class _BrokenStream:
            def read(self, size: int = -1) -> bytes:
                raise OSError(28, "No space left on device")

        with self.assertLogs("app.services.artifacts", level="ERROR"):
            with self.assertRaises(ServiceError):
                store_upload(
                    _BrokenStream(),
                    original_name="notes.txt",
                    media_type="text/plain",
                    uploads_dir=self.uploads_dir,
                    max_bytes=1024,
                )

        self.assertEqual(list(self.uploads_dir.iterdir()), [])

    def test_discard_is_a_no_op_for_missing_paths(self) -> None:
        self.assertFalse(discard_artifact(None))
        self.assertFalse(discard_artifact(""))
        self.assertFalse(discard_artifact(self.uploads_dir / "gone.pdf"))

    def test_discard_removes_existing_file(self) -> None:
        self.uploads_dir.mkdir()
        path = self.uploads_dir / "1.pdf"
        path.write_bytes(b"%PDF")

        self.assertTrue(discard_artifact(str(path)))
        self.assertFalse(path.exists())


if __name__ == "__main__":
    unittest.main()
