"""Request history store: insert, list, and delete with artifact reclamation."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import PersistenceError
from app.models.request_history import REQUEST_TYPE_CHAT, REQUEST_TYPE_FILE, RequestHistory
from app.services.artifacts import discard_artifact

logger = logging.getLogger(__name__)

HISTORY_MAX_LIMIT = 1000


def utc_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string."""

    return datetime.now(timezone.utc).isoformat()


def clamp_history_limit(limit: int | None, *, default: int = 200, maximum: int = HISTORY_MAX_LIMIT) -> int:
    """Clamp a caller-supplied limit to ``[1, maximum]``."""

    if limit is None:
        limit = default
    return max(1, min(int(limit), maximum))


def _insert(db: Session, record: RequestHistory) -> RequestHistory:
    try:
        db.add(record)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("history.insert_failed request_type=%s status=%s", record.request_type, record.status)
        raise PersistenceError(f"Failed to record request history: {exc}") from exc
    db.refresh(record)
    logger.info(
        "history.recorded id=%s request_type=%s status=%s duration_ms=%s",
        record.id,
        record.request_type,
        record.status,
        record.duration_ms,
    )
    return record


def record_chat_request(
    db: Session,
    *,
    created_at: str,
    prompt: str,
    status: str,
    duration_ms: int,
    response: str | None = None,
    error: str | None = None,
) -> RequestHistory:
    """Insert one fully formed chat record."""

    return _insert(
        db,
        RequestHistory(
            created_at=created_at,
            request_type=REQUEST_TYPE_CHAT,
            prompt=prompt,
            response=response,
            status=status,
            error=error,
            duration_ms=duration_ms,
        ),
    )


def record_file_request(
    db: Session,
    *,
    created_at: str,
    prompt: str,
    status: str,
    duration_ms: int,
    command_name: str,
    file_name: str,
    file_mime: str,
    file_size: int,
    file_path: str,
    openai_file_id: str | None = None,
    result_json: str | None = None,
    error: str | None = None,
) -> RequestHistory:
    """Insert one fully formed file analysis record; it takes ownership of ``file_path``."""

    return _insert(
        db,
        RequestHistory(
            created_at=created_at,
            request_type=REQUEST_TYPE_FILE,
            prompt=prompt,
            response=None,
            status=status,
            error=error,
            duration_ms=duration_ms,
            command_name=command_name,
            file_name=file_name,
            file_mime=file_mime,
            file_size=file_size,
            file_path=file_path,
            openai_file_id=openai_file_id,
            result_json=result_json,
        ),
    )


def list_history(db: Session, limit: int | None = None) -> list[RequestHistory]:
    """Return records newest first, at most ``limit`` (clamped to 1000)."""

    stmt = select(RequestHistory).order_by(RequestHistory.id.desc()).limit(clamp_history_limit(limit))
    return list(db.scalars(stmt).all())


def delete_history_item(db: Session, item_id: int) -> bool:
    """Delete one record after reclaiming its artifact. Returns whether a row was removed."""

    file_path = db.scalar(select(RequestHistory.file_path).where(RequestHistory.id == item_id))
    discard_artifact(file_path)

    result = db.execute(delete(RequestHistory).where(RequestHistory.id == item_id))
    db.commit()
    deleted = result.rowcount > 0
    logger.info("history.deleted id=%s deleted=%s", item_id, deleted)
    return deleted


def clear_history(db: Session) -> int:
    """Delete every record after reclaiming every referenced artifact."""

    file_paths = db.scalars(
        select(RequestHistory.file_path).where(
            RequestHistory.file_path.is_not(None),
            RequestHistory.file_path != "",
        )
    ).all()
    for file_path in file_paths:
        discard_artifact(file_path)

    result = db.execute(delete(RequestHistory))
    db.commit()
    logger.info("history.cleared rows=%d artifacts=%d", result.rowcount, len(file_paths))
    return result.rowcount
