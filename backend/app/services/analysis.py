"""Chat and file analysis requests, each recorded exactly once in history."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from time import perf_counter
from typing import Any

from sqlalchemy.orm import Session

from app.config import Settings
from app.errors import (
    CommandNotFoundError,
    DocsiftError,
    InvalidCommandSpecError,
    InvalidRequestError,
    PersistenceError,
    ServiceError,
    UnsupportedFileTypeError,
)
from app.extraction.command_spec import resolve_command_spec
from app.extraction.file_kinds import ALLOWED_TYPES_LABEL, FileKind, classify_upload
from app.extraction.invoker import ExtractionInvoker
from app.extraction.normalizer import InputNormalizer
from app.extraction.openai_client import UnderstandingClient
from app.models.request_history import STATUS_ERROR, STATUS_SUCCESS, RequestHistory
from app.schemas.history import history_item_from_record
from app.services.artifacts import StoredUpload, discard_artifact
from app.services.history import record_chat_request, record_file_request, utc_timestamp

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], UnderstandingClient]


def _elapsed_ms(started: float) -> int:
    return max(0, int(round((perf_counter() - started) * 1000)))


def _as_pipeline_error(exc: Exception, fallback_message: str) -> DocsiftError:
    if isinstance(exc, DocsiftError):
        return exc
    logger.exception("analysis.unexpected_failure")
    return ServiceError(str(exc) or fallback_message)


def run_chat_request(
    db: Session,
    prompt: str | None,
    *,
    client_factory: ClientFactory,
    chat_model: str,
) -> tuple[str, RequestHistory]:
    """Send a free-text prompt and record the outcome."""

    trimmed_prompt = (prompt or "").strip()
    if not trimmed_prompt:
        raise InvalidRequestError("Missing prompt.")

    created_at = utc_timestamp()
    started = perf_counter()
    try:
        invoker = ExtractionInvoker(client_factory(), chat_model=chat_model)
        output = invoker.complete_text(trimmed_prompt)
    except Exception as exc:
        failure = _as_pipeline_error(exc, "Chat request failed.")
        duration_ms = _elapsed_ms(started)
        try:
            record = record_chat_request(
                db,
                created_at=created_at,
                prompt=trimmed_prompt,
                status=STATUS_ERROR,
                error=str(failure),
                duration_ms=duration_ms,
            )
        except PersistenceError:
            raise type(failure)(str(failure)) from exc
        raise type(failure)(str(failure), history_item=history_item_from_record(record)) from exc

    try:
        record = record_chat_request(
            db,
            created_at=created_at,
            prompt=trimmed_prompt,
            status=STATUS_SUCCESS,
            response=output,
            duration_ms=_elapsed_ms(started),
        )
    except PersistenceError as exc:
        raise PersistenceError(str(exc), outcome={"output": output}) from exc
    return output, record


def run_file_analysis(
    db: Session,
    upload: StoredUpload,
    *,
    command: str | None,
    client_factory: ClientFactory,
    settings: Settings,
) -> tuple[dict[str, Any], RequestHistory]:
    """Run a command spec over an uploaded file and record the outcome.

    The stored upload is discarded when the request fails before a history
    row could own it (bad command, unsupported type, failed history write).
    """

    created_at = utc_timestamp()
    prompt = f"Analyze file: {upload.original_name}"

    try:
        spec = resolve_command_spec(command, settings.commands_dir, default_model=settings.openai_extraction_model)
        if classify_upload(upload.original_name, upload.media_type) is FileKind.UNSUPPORTED:
            raise UnsupportedFileTypeError(f"Unsupported file type. Allowed: {ALLOWED_TYPES_LABEL}.")
    except (CommandNotFoundError, InvalidCommandSpecError, UnsupportedFileTypeError):
        discard_artifact(upload.path)
        raise

    record_fields: dict[str, Any] = {
        "created_at": created_at,
        "prompt": prompt,
        "command_name": spec.name,
        "file_name": upload.original_name,
        "file_mime": upload.media_type,
        "file_size": upload.size,
        "file_path": str(upload.path),
    }

    openai_file_id: str | None = None
    started = perf_counter()
    try:
        client = client_factory()
        normalized = InputNormalizer(client).normalize(upload)
        openai_file_id = normalized.external_file_id
        outcome = ExtractionInvoker(client, chat_model=settings.openai_chat_model).invoke([normalized.part], spec)
    except Exception as exc:
        failure = _as_pipeline_error(exc, "Analyze failed.")
        duration_ms = _elapsed_ms(started)
        try:
            record = record_file_request(
                db,
                **record_fields,
                status=STATUS_ERROR,
                error=str(failure),
                duration_ms=duration_ms,
                openai_file_id=openai_file_id,
            )
        except PersistenceError:
            discard_artifact(upload.path)
            raise type(failure)(str(failure)) from exc
        raise type(failure)(str(failure), history_item=history_item_from_record(record)) from exc

    duration_ms = _elapsed_ms(started)
    try:
        record = record_file_request(
            db,
            **record_fields,
            status=STATUS_SUCCESS,
            duration_ms=duration_ms,
            openai_file_id=openai_file_id,
            result_json=json.dumps(outcome.data),
        )
    except PersistenceError as exc:
        discard_artifact(upload.path)
        raise PersistenceError(str(exc), outcome={"result": outcome.data}) from exc
    return outcome.data, record
