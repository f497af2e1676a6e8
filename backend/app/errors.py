"""Error taxonomy shared by the extraction pipeline and the HTTP layer."""

from __future__ import annotations

from typing import Any


class DocsiftError(RuntimeError):
    """Base class for failures that map onto an HTTP error response.

    ``history_item`` is set once the failure has been recorded in the request
    history, so the response can surface the stored record. ``outcome`` holds
    response fields produced before a failed history write, such as the chat
    ``output`` or the extraction ``result``.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        history_item: Any | None = None,
        outcome: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.history_item = history_item
        self.outcome = outcome


class InvalidRequestError(DocsiftError):
    """Raised when the request itself is malformed (empty prompt, missing file, bad id)."""

    status_code = 400


class InvalidUploadError(InvalidRequestError):
    """Raised when an uploaded file cannot be read as the kind it claims to be."""


class CommandNotFoundError(DocsiftError):
    """Raised when no command spec file matches the requested name."""

    status_code = 400


class InvalidCommandSpecError(DocsiftError):
    """Raised when a command spec file is unreadable or lacks its schema."""

    status_code = 400


class UnsupportedFileTypeError(DocsiftError):
    """Raised when an upload is not a PDF, DOCX, text file or image."""

    status_code = 400


class ServiceError(DocsiftError):
    """Raised when the understanding service call fails."""

    status_code = 500


class PersistenceError(DocsiftError):
    """Raised when the request history write fails."""

    status_code = 500
