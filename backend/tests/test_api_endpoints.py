"""End-to-end tests for the HTTP surface with a stubbed understanding service."""

from __future__ import annotations

import io
import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings, get_settings
from app.db.dependencies import get_db
from app.errors import PersistenceError, ServiceError
from app.extraction.openai_client import get_client_factory
from app.main import app
from app.models.base import Base
from app.models.request_history import RequestHistory

_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "document_type": {"type": "string"},
        "summary": {"type": "string"},
    },
    "required": ["document_type", "summary"],
}


class _StubUnderstandingClient:
    def __init__(self) -> None:
        self.output = '{"document_type": "report", "summary": "Quarterly numbers."}'
        self.error: Exception | None = None
        self.calls: list[dict[str, object]] = []
        self.uploads: list[dict[str, object]] = []

    def create_response(self, *, model, input, instructions=None, text_format=None):  # noqa: ANN001
        self.calls.append(
            {"model": model, "input": input, "instructions": instructions, "text_format": text_format}
        )
        if self.error is not None:
            raise self.error
        return self.output

    def upload_file(self, path: Path, *, file_name: str, media_type: str) -> str:
        self.uploads.append({"path": path, "file_name": file_name, "media_type": media_type})
        return "file-report-1"


class ApiEndpointTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autoflush=False, autocommit=False, future=True)
        Base.metadata.create_all(cls.engine)

    @classmethod
    def tearDownClass(cls) -> None:
        Base.metadata.drop_all(cls.engine)
        cls.engine.dispose()

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.uploads_dir = root / "uploads"
        self.commands_dir = root / "commands"
        self.commands_dir.mkdir()
        (self.commands_dir / "extract-v1.json").write_text(
            json.dumps(
                {
                    "name": "Document summary v1",
                    "user_prompt": "Summarize the document.",
                    "schema_name": "document_summary",
                    "schema": _SCHEMA,
                }
            ),
            encoding="utf-8",
        )
        self.settings = Settings(
            _env_file=None,
            database_url="sqlite+pysqlite:///:memory:",
            uploads_dir=self.uploads_dir,
            commands_dir=self.commands_dir,
            openai_chat_model="chat-model",
            openai_extraction_model="extraction-model",
        )
        self.stub = _StubUnderstandingClient()

        with self.SessionLocal() as db:
            db.execute(delete(RequestHistory))
            db.commit()

        def _get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = _get_db
        app.dependency_overrides[get_settings] = lambda: self.settings
        app.dependency_overrides[get_client_factory] = lambda: (lambda: self.stub)
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self._tmp.cleanup()

    def _history_count(self) -> int:
        with self.SessionLocal() as db:
            return int(db.scalar(select(func.count()).select_from(RequestHistory)))

    def _stored_uploads(self) -> list[Path]:
        if not self.uploads_dir.exists():
            return []
        return sorted(self.uploads_dir.iterdir())

    def test_chat_success_records_one_chat_item(self) -> None:
        self.stub.output = "Hello there."

        resp = self.client.post("/api/chat", json={"prompt": "  Say hello  "})

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["output"], "Hello there.")
        item = body["historyItem"]
        self.assertEqual(item["request_type"], "chat")
        self.assertEqual(item["prompt"], "Say hello")
        self.assertEqual(item["response"], "Hello there.")
        self.assertEqual(item["status"], "success")
        self.assertIsNone(item["error"])
        self.assertGreaterEqual(item["duration_ms"], 0)
        self.assertEqual(self.stub.calls[0]["model"], "chat-model")
        self.assertEqual(self._history_count(), 1)

    def test_chat_with_blank_prompt_is_rejected_without_record(self) -> None:
        for payload in ({"prompt": "   "}, {}):
            resp = self.client.post("/api/chat", json=payload)
            self.assertEqual(resp.status_code, 400)
            self.assertEqual(resp.json(), {"error": "Missing prompt."})
        self.assertEqual(self.stub.calls, [])
        self.assertEqual(self._history_count(), 0)

    def test_chat_service_failure_records_one_error_item(self) -> None:
        self.stub.error = ServiceError("OpenAI HTTP 429: Rate limit reached")

        resp = self.client.post("/api/chat", json={"prompt": "Hi"})

        self.assertEqual(resp.status_code, 500)
        body = resp.json()
        self.assertEqual(body["error"], "OpenAI HTTP 429: Rate limit reached")
        self.assertEqual(body["historyItem"]["status"], "error")
        self.assertEqual(body["historyItem"]["error"], "OpenAI HTTP 429: Rate limit reached")
        self.assertEqual(self._history_count(), 1)

    def test_chat_with_unconfigured_client_records_error(self) -> None:
        def _missing_key():
            raise ServiceError("OPENAI_API_KEY is not configured.")

        app.dependency_overrides[get_client_factory] = lambda: _missing_key

        resp = self.client.post("/api/chat", json={"prompt": "Hi"})

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["historyItem"]["error"], "OPENAI_API_KEY is not configured.")
        self.assertEqual(self._history_count(), 1)

    def test_pdf_upload_uses_default_command_and_records_file_item(self) -> None:
        resp = self.client.post(
            "/api/analyze-file",
            files={"file": ("report.pdf", b"%PDF-1.4\n%%EOF\n", "application/pdf")},
        )

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["result"], {"document_type": "report", "summary": "Quarterly numbers."})
        item = body["historyItem"]
        self.assertEqual(item["request_type"], "file")
        self.assertEqual(item["file_name"], "report.pdf")
        self.assertEqual(item["file_mime"], "application/pdf")
        self.assertEqual(item["file_size"], len(b"%PDF-1.4\n%%EOF\n"))
        self.assertEqual(item["command_name"], "Document summary v1")
        self.assertEqual(item["openai_file_id"], "file-report-1")
        self.assertEqual(item["prompt"], "Analyze file: report.pdf")
        self.assertEqual(json.loads(item["result_json"]), body["result"])
        self.assertNotIn("file_path", item)

        self.assertEqual(self.stub.uploads[0]["file_name"], "report.pdf")
        call = self.stub.calls[0]
        self.assertEqual(call["model"], "extraction-model")
        self.assertEqual(call["text_format"]["name"], "document_summary")
        self.assertEqual(call["text_format"]["schema"], _SCHEMA)
        content = call["input"][0]["content"]
        self.assertEqual(content[0], {"type": "input_file", "file_id": "file-report-1"})
        self.assertEqual(content[-1], {"type": "input_text", "text": "Summarize the document."})

        stored = self._stored_uploads()
        self.assertEqual(len(stored), 1)
        self.assertEqual(stored[0].suffix, ".pdf")
        with self.SessionLocal() as db:
            record = db.get(RequestHistory, item["id"])
            self.assertEqual(record.file_path, str(stored[0]))

    def test_webp_upload_is_sent_as_png_image(self) -> None:
        buffer = io.BytesIO()
        Image.new("RGB", (3, 3), "blue").save(buffer, format="WEBP")

        resp = self.client.post(
            "/api/analyze-file",
            files={"file": ("notes.webp", buffer.getvalue(), "image/webp")},
        )

        self.assertEqual(resp.status_code, 200)
        image_part = self.stub.calls[0]["input"][0]["content"][0]
        self.assertEqual(image_part["type"], "input_image")
        self.assertTrue(image_part["image_url"].startswith("data:image/png;base64,"))
        self.assertEqual(self.stub.uploads, [])

    def test_non_json_output_is_wrapped_not_failed(self) -> None:
        self.stub.output = "I could not follow the schema."

        resp = self.client.post(
            "/api/analyze-file",
            files={"file": ("notes.txt", b"Meeting notes", "text/plain")},
        )

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["result"], {"_raw": "I could not follow the schema."})
        self.assertEqual(resp.json()["historyItem"]["status"], "success")

    def test_missing_file_is_rejected(self) -> None:
        resp = self.client.post("/api/analyze-file", data={"command": "extract-v1.json"})

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "Missing file."})
        self.assertEqual(self._history_count(), 0)

    def test_unknown_command_is_rejected_without_record_or_artifact(self) -> None:
        resp = self.client.post(
            "/api/analyze-file",
            data={"command": "../../etc/passwd"},
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )

        self.assertEqual(resp.status_code, 400)
        self.assertIn("passwd", resp.json()["error"])
        self.assertNotIn("historyItem", resp.json())
        self.assertEqual(self._history_count(), 0)
        self.assertEqual(self._stored_uploads(), [])
        self.assertEqual(self.stub.calls, [])

    def test_unsupported_type_is_rejected_without_record_or_artifact(self) -> None:
        resp = self.client.post(
            "/api/analyze-file",
            files={"file": ("archive.zip", b"PK\x03\x04", "application/zip")},
        )

        self.assertEqual(resp.status_code, 400)
        self.assertIn("Allowed: PDF, DOCX, TXT, JPG/PNG/WEBP/AVIF", resp.json()["error"])
        self.assertEqual(self._history_count(), 0)
        self.assertEqual(self._stored_uploads(), [])

    def test_file_service_failure_records_error_and_keeps_artifact_until_deleted(self) -> None:
        self.stub.error = ServiceError("OpenAI request failed: timed out")

        resp = self.client.post(
            "/api/analyze-file",
            files={"file": ("report.pdf", b"%PDF-1.4", "application/pdf")},
        )

        self.assertEqual(resp.status_code, 500)
        item = resp.json()["historyItem"]
        self.assertEqual(item["status"], "error")
        self.assertEqual(item["error"], "OpenAI request failed: timed out")
        self.assertEqual(item["openai_file_id"], "file-report-1")
        self.assertIsNone(item["result_json"])
        self.assertEqual(self._history_count(), 1)
        stored = self._stored_uploads()
        self.assertEqual(len(stored), 1)

        delete_resp = self.client.delete(f"/api/history/{item['id']}")

        self.assertEqual(delete_resp.status_code, 200)
        self.assertEqual(delete_resp.json(), {"deleted": True})
        self.assertFalse(stored[0].exists())
        self.assertEqual(self.client.get("/api/history").json(), {"items": []})

    def test_corrupt_docx_is_recorded_as_validation_error(self) -> None:
        resp = self.client.post(
            "/api/analyze-file",
            files={"file": ("letter.docx", b"not a zip archive", "application/octet-stream")},
        )

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["historyItem"]["status"], "error")
        self.assertEqual(self._history_count(), 1)
        self.assertEqual(self.stub.calls, [])

    def test_history_lists_newest_first_and_clears_everything(self) -> None:
        self.client.post("/api/chat", json={"prompt": "first"})
        self.client.post(
            "/api/analyze-file",
            files={"file": ("notes.txt", b"some notes", "text/plain")},
        )
        self.client.post("/api/chat", json={"prompt": "third"})

        items = self.client.get("/api/history").json()["items"]
        self.assertEqual([item["prompt"] for item in items], ["third", "Analyze file: notes.txt", "first"])
        self.assertEqual(
            [item["prompt"] for item in self.client.get("/api/history", params={"limit": 1}).json()["items"]],
            ["third"],
        )
        self.assertEqual(len(self.client.get("/api/history", params={"limit": 0}).json()["items"]), 1)

        resp = self.client.delete("/api/history")

        self.assertEqual(resp.json(), {"ok": True})
        self.assertEqual(self.client.get("/api/history").json(), {"items": []})
        self.assertEqual(self._stored_uploads(), [])

    def test_invalid_history_parameters_are_bad_requests(self) -> None:
        self.assertEqual(self.client.delete("/api/history/abc").status_code, 400)
        self.assertEqual(self.client.delete("/api/history/abc").json(), {"error": "Invalid id."})
        self.assertEqual(self.client.get("/api/history", params={"limit": "lots"}).status_code, 400)
        self.assertEqual(self.client.delete("/api/history/999").json(), {"deleted": False})

    def test_out_of_range_history_id_is_a_bad_request(self) -> None:
        for raw_id in ("99999999999999999999", "-99999999999999999999", str(2**63)):
            with self.subTest(raw_id=raw_id):
                resp = self.client.delete(f"/api/history/{raw_id}")

                self.assertEqual(resp.status_code, 400)
                self.assertEqual(resp.json(), {"error": "Invalid id."})

        self.assertEqual(self.client.delete(f"/api/history/{2**63 - 1}").json(), {"deleted": False})

    def test_chat_output_survives_a_failed_history_write(self) -> None:
        self.stub.output = "Hello there."

        with mock.patch(
            "app.services.analysis.record_chat_request",
            side_effect=PersistenceError("Failed to record request history: disk I/O error"),
        ):
            resp = self.client.post("/api/chat", json={"prompt": "Hi"})

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(
            resp.json(),
            {"error": "Failed to record request history: disk I/O error", "output": "Hello there."},
        )
        self.assertEqual(self._history_count(), 0)

    def test_file_result_survives_a_failed_history_write_and_upload_is_discarded(self) -> None:
        with mock.patch(
            "app.services.analysis.record_file_request",
            side_effect=PersistenceError("Failed to record request history: disk I/O error"),
        ):
            resp = self.client.post(
                "/api/analyze-file",
                files={"file": ("notes.txt", b"Meeting notes", "text/plain")},
            )

        self.assertEqual(resp.status_code, 500)
        body = resp.json()
        self.assertEqual(body["error"], "Failed to record request history: disk I/O error")
        self.assertEqual(body["result"], {"document_type": "report", "summary": "Quarterly numbers."})
        self.assertNotIn("historyItem", body)
        self.assertEqual(self._stored_uploads(), [])
        self.assertEqual(self._history_count(), 0)

    def test_lists_available_commands(self) -> None:
        resp = self.client.get("/api/commands")

        self.assertEqual(resp.json(), {"items": ["extract-v1.json"]})


if __name__ == "__main__":
    unittest.main()
