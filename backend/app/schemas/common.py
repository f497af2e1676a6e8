"""Common API response schemas."""

from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from app.errors import DocsiftError
from app.schemas.history import HistoryItem


class ErrorResponse(BaseModel):
    """Error envelope; ``historyItem`` is present when the failure was recorded.

    ``output`` or ``result`` is present when the request succeeded but its
    history write failed.
    """

    model_config = ConfigDict(populate_by_name=True)

    error: str
    history_item: HistoryItem | None = Field(default=None, alias="historyItem")
    output: str | None = None
    result: dict[str, Any] | None = None


def error_response(exc: DocsiftError) -> JSONResponse:
    """Render a pipeline error with its status code and recorded history item."""

    content: dict[str, Any] = {"error": str(exc)}
    if exc.outcome:
        content.update(exc.outcome)
    if exc.history_item is not None:
        content["historyItem"] = exc.history_item.model_dump(mode="json")
    return JSONResponse(status_code=exc.status_code, content=content)
