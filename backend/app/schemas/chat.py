"""Schemas for the free-text chat endpoint."""

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.history import ChatHistoryItem


class ChatRequest(BaseModel):
    """Request payload for one chat prompt."""

    prompt: str = ""


class ChatResponse(BaseModel):
    """Response payload for a successful chat prompt."""

    model_config = ConfigDict(populate_by_name=True)

    output: str
    history_item: ChatHistoryItem = Field(alias="historyItem")
