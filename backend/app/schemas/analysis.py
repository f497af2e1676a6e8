"""Schemas for file analysis and command discovery."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.history import FileHistoryItem


class AnalyzeFileResponse(BaseModel):
    """Response payload for a successful file analysis."""

    model_config = ConfigDict(populate_by_name=True)

    result: dict[str, Any]
    history_item: FileHistoryItem = Field(alias="historyItem")


class CommandListResponse(BaseModel):
    """Command spec file names available under the commands directory."""

    items: list[str]
