"""Understanding-service client for the OpenAI Responses and Files APIs."""

from __future__ import annotations

import json
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol
from urllib import error as urllib_error
from urllib import request as urllib_request

from app.config import get_settings
from app.errors import ServiceError


class UnderstandingClient(Protocol):
    """Protocol for the document-understanding / text-generation service."""

    def create_response(
        self,
        *,
        model: str,
        input: str | list[dict[str, Any]],
        instructions: str | None = None,
        text_format: dict[str, Any] | None = None,
    ) -> str:
        """Run one generation and return its output text."""

    def upload_file(self, path: Path, *, file_name: str, media_type: str) -> str:
        """Register a document with the service and return its identifier."""


@dataclass(slots=True)
class OpenAIResponsesClient:
    """Minimal OpenAI Responses/Files client using stdlib HTTP."""

    api_key: str
    base_url: str = "https://api.openai.com/v1"
    timeout_seconds: int = 60

    def create_response(
        self,
        *,
        model: str,
        input: str | list[dict[str, Any]],
        instructions: str | None = None,
        text_format: dict[str, Any] | None = None,
    ) -> str:
        payload: dict[str, Any] = {"model": model, "input": input}
        if instructions:
            payload["instructions"] = instructions
        if text_format is not None:
            payload["text"] = {"format": text_format}

        decoded = self._send(
            "/responses",
            data=json.dumps(payload).encode("utf-8"),
            content_type="application/json",
        )
        return _extract_output_text(decoded)

    def upload_file(self, path: Path, *, file_name: str, media_type: str) -> str:
        boundary = f"docsift-{uuid.uuid4().hex}"
        try:
            content = path.read_bytes()
        except OSError as exc:
            raise ServiceError(f"Failed to read upload for registration: {exc}") from exc

        safe_name = file_name.replace('"', "_") or path.name
        body = b"".join(
            [
                f"--{boundary}\r\n".encode(),
                b'Content-Disposition: form-data; name="purpose"\r\n\r\n',
                b"user_data\r\n",
                f"--{boundary}\r\n".encode(),
                f'Content-Disposition: form-data; name="file"; filename="{safe_name}"\r\n'.encode("utf-8"),
                f"Content-Type: {media_type or 'application/octet-stream'}\r\n\r\n".encode(),
                content,
                b"\r\n",
                f"--{boundary}--\r\n".encode(),
            ]
        )
        decoded = self._send("/files", data=body, content_type=f"multipart/form-data; boundary={boundary}")
        file_id = decoded.get("id")
        if not isinstance(file_id, str) or not file_id:
            raise ServiceError("OpenAI file upload response did not include a file id")
        return file_id

    def _send(self, path: str, *, data: bytes, content_type: str) -> dict[str, Any]:
        url = f"{self.base_url.rstrip('/')}{path}"
        req = urllib_request.Request(
            url=url,
            data=data,
            method="POST",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": content_type,
            },
        )
        try:
            with urllib_request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8")
        except urllib_error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise ServiceError(f"OpenAI HTTP {exc.code}: {_error_message(detail)}") from exc
        except urllib_error.URLError as exc:
            raise ServiceError(f"OpenAI request failed: {exc.reason}") from exc
        except TimeoutError as exc:
            raise ServiceError(f"OpenAI request timed out after {self.timeout_seconds}s") from exc

        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ServiceError("OpenAI returned a non-JSON response") from exc
        if not isinstance(decoded, dict):
            raise ServiceError("OpenAI returned an unexpected response")
        return decoded


def _error_message(detail: str) -> str:
    try:
        message = json.loads(detail)["error"]["message"]
    except (KeyError, TypeError, json.JSONDecodeError):
        return detail
    return message if isinstance(message, str) and message else detail


def _extract_output_text(decoded: dict[str, Any]) -> str:
    """Concatenate the ``output_text`` pieces of a Responses API payload."""

    error = decoded.get("error")
    if isinstance(error, dict) and error.get("message"):
        raise ServiceError(f"OpenAI response failed: {error['message']}")

    shortcut = decoded.get("output_text")
    if isinstance(shortcut, str):
        return shortcut

    texts: list[str] = []
    try:
        for item in decoded.get("output") or []:
            if item.get("type") != "message":
                continue
            for content in item.get("content") or []:
                content_type = content.get("type")
                if content_type == "refusal":
                    refusal = str(content.get("refusal") or "").strip()
                    raise ServiceError(f"OpenAI refused the request: {refusal or 'no reason given'}")
                if content_type == "output_text":
                    texts.append(str(content.get("text") or ""))
    except AttributeError as exc:
        raise ServiceError("OpenAI returned an unexpected response shape") from exc
    return "".join(texts)


def get_default_understanding_client() -> UnderstandingClient:
    """Return the configured understanding-service client."""

    settings = get_settings()
    if not settings.openai_api_key:
        raise ServiceError("OPENAI_API_KEY is not configured. Set it in backend/.env before sending requests.")
    return OpenAIResponsesClient(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout_seconds=settings.openai_timeout_seconds,
    )


def get_client_factory() -> Callable[[], UnderstandingClient]:
    """FastAPI dependency returning how to build the client for one request.

    The client is built inside the request pipeline so a missing API key is
    recorded in history like any other service failure.
    """

    return get_default_understanding_client
