"""Turn a stored upload into the single content part that represents it."""

from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from PIL import Image, UnidentifiedImageError

from app.errors import InvalidUploadError, UnsupportedFileTypeError
from app.extraction.content import ContentPart, FileRefPart, ImagePart, TextPart
from app.extraction.file_kinds import (
    ALLOWED_TYPES_LABEL,
    FileKind,
    canonical_image_media_type,
    classify_upload,
    needs_png_reencoding,
)
from app.extraction.openai_client import UnderstandingClient
from app.services.artifacts import StoredUpload

logger = logging.getLogger(__name__)

EMPTY_DOCX_PLACEHOLDER = "(DOCX contained no extractable text.)"


@dataclass(frozen=True, slots=True)
class NormalizedInput:
    """Content part for an upload plus what normalizing it produced on the side."""

    part: ContentPart
    kind: FileKind
    external_file_id: str | None = None


class InputNormalizer:
    """Dispatch an upload to the handler for its kind.

    Only PDFs touch the network: the service needs the document registered
    before a request can reference it.
    """

    def __init__(self, client: UnderstandingClient) -> None:
        self._client = client

    def normalize(self, upload: StoredUpload) -> NormalizedInput:
        kind = classify_upload(upload.original_name, upload.media_type)
        match kind:
            case FileKind.PDF:
                external_id = self._client.upload_file(
                    upload.path,
                    file_name=upload.original_name,
                    media_type=upload.media_type or "application/pdf",
                )
                return NormalizedInput(part=FileRefPart(external_id=external_id), kind=kind, external_file_id=external_id)
            case FileKind.DOCX:
                return NormalizedInput(part=TextPart(text=extract_docx_text(upload.path)), kind=kind)
            case FileKind.TEXT:
                text = upload.path.read_bytes().decode("utf-8", errors="replace")
                return NormalizedInput(part=TextPart(text=text), kind=kind)
            case FileKind.IMAGE:
                return NormalizedInput(part=encode_image(upload), kind=kind)
            case FileKind.UNSUPPORTED:
                raise UnsupportedFileTypeError(f"Unsupported file type. Allowed: {ALLOWED_TYPES_LABEL}.")


def extract_docx_text(path: Path) -> str:
    """Return the paragraph and table text of a DOCX file, or a placeholder."""

    try:
        document = Document(str(path))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise InvalidUploadError(f"DOCX file could not be read: {exc}") from exc

    parts = [paragraph.text.strip() for paragraph in document.paragraphs if paragraph.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                parts.append(" | ".join(cells))

    text = "\n".join(parts).strip()
    return text or EMPTY_DOCX_PLACEHOLDER


def encode_image(upload: StoredUpload) -> ImagePart:
    """Return an image data URL, converting formats the service rejects to PNG."""

    payload = upload.path.read_bytes()
    if not needs_png_reencoding(upload.original_name, upload.media_type):
        return ImagePart.from_bytes(payload, canonical_image_media_type(upload.original_name, upload.media_type))

    try:
        with Image.open(io.BytesIO(payload)) as image:
            buffer = io.BytesIO()
            image.save(buffer, format="PNG")
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidUploadError(f"Image could not be converted to PNG: {exc}") from exc
    logger.info("normalizer.image_reencoded file=%s bytes_in=%d bytes_out=%d", upload.original_name, len(payload), buffer.tell())
    return ImagePart.from_bytes(buffer.getvalue(), "image/png")
