"""Classification of uploads into the closed set of supported kinds."""

from __future__ import annotations

from enum import Enum
from pathlib import PurePath

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp", ".avif"})
REENCODED_IMAGE_EXTENSIONS = frozenset({".webp", ".avif"})
REENCODED_IMAGE_MEDIA_TYPES = frozenset({"image/webp", "image/avif"})
ALLOWED_TYPES_LABEL = "PDF, DOCX, TXT, JPG/PNG/WEBP/AVIF"

_EXTENSION_MEDIA_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".avif": "image/avif",
}


class FileKind(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    TEXT = "text"
    IMAGE = "image"
    UNSUPPORTED = "unsupported"


def file_extension(file_name: str | None) -> str:
    """Return the lower-cased extension of ``file_name`` including the dot."""

    return PurePath(file_name or "").suffix.lower()


def base_media_type(media_type: str | None) -> str:
    """Return the lower-cased media type without parameters such as ``charset``."""

    return (media_type or "").split(";", 1)[0].strip().lower()


def classify_upload(file_name: str | None, media_type: str | None) -> FileKind:
    """Classify an upload by extension and declared media type.

    Checks run in a fixed order (PDF, DOCX, text, image) so a file matching
    more than one rule always lands in the same kind.
    """

    ext = file_extension(file_name)
    mime = base_media_type(media_type)

    if ext == ".pdf" or mime == "application/pdf":
        return FileKind.PDF
    if ext == ".docx" or mime == DOCX_MEDIA_TYPE:
        return FileKind.DOCX
    if ext == ".txt" or mime.startswith("text/"):
        return FileKind.TEXT
    if mime.startswith("image/") or ext in IMAGE_EXTENSIONS:
        return FileKind.IMAGE
    return FileKind.UNSUPPORTED


def needs_png_reencoding(file_name: str | None, media_type: str | None) -> bool:
    """Return whether an image must be converted to PNG before dispatch."""

    mime = base_media_type(media_type)
    return file_extension(file_name) in REENCODED_IMAGE_EXTENSIONS or mime in REENCODED_IMAGE_MEDIA_TYPES


def canonical_image_media_type(file_name: str | None, media_type: str | None) -> str:
    """Return the media type label used for an image that is passed through."""

    mime = base_media_type(media_type)
    if mime == "image/jpg":
        return "image/jpeg"
    if mime.startswith("image/"):
        return mime
    return _EXTENSION_MEDIA_TYPES.get(file_extension(file_name), "image/png")
