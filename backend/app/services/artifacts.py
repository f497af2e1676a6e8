"""On-disk upload artifacts tied to request history rows."""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from app.errors import InvalidRequestError, ServiceError
from app.extraction.file_kinds import file_extension

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True, slots=True)
class StoredUpload:
    """An upload written to durable storage, not yet owned by a history row."""

    path: Path
    original_name: str
    media_type: str
    size: int


def artifact_file_name(original_name: str | None) -> str:
    """Return a collision-resistant name: epoch millis, random suffix, original extension."""

    return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{file_extension(original_name)}"


def store_upload(
    source: BinaryIO,
    *,
    original_name: str,
    media_type: str | None,
    uploads_dir: Path,
    max_bytes: int,
) -> StoredUpload:
    """Stream an upload into ``uploads_dir`` and return where it landed."""

    path = uploads_dir / artifact_file_name(original_name)
    try:
        uploads_dir.mkdir(parents=True, exist_ok=True)
        target = path.open("xb")
    except OSError as exc:
        logger.exception("artifacts.open_failed path=%s", path)
        raise ServiceError(f"Failed to store upload: {exc}") from exc

    size = 0
    with target:
        try:
            while chunk := source.read(_CHUNK_SIZE):
                size += len(chunk)
                if size > max_bytes:
                    raise InvalidRequestError(f"File is too large. Maximum size is {max_bytes} bytes.")
                target.write(chunk)
        except Exception as exc:
            target.close()
            discard_artifact(path)
            if isinstance(exc, OSError):
                logger.exception("artifacts.write_failed path=%s", path)
                raise ServiceError(f"Failed to store upload: {exc}") from exc
            raise

    logger.info("artifacts.stored path=%s size=%d", path, size)
    return StoredUpload(path=path, original_name=original_name, media_type=media_type or "", size=size)


def discard_artifact(path: str | Path | None) -> bool:
    """Delete an artifact if it still exists.

    Failures are logged and swallowed; callers go on to mutate the history
    store regardless. Returns whether a file was removed.
    """

    if not path:
        return False
    target = Path(path)
    try:
        if not target.exists():
            return False
        target.unlink()
    except OSError:
        logger.exception("artifacts.discard_failed path=%s", target)
        return False
    logger.info("artifacts.discarded path=%s", target)
    return True
