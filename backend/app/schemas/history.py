"""Request history schemas."""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.models.request_history import REQUEST_TYPE_FILE, RequestHistory


class _HistoryItemBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: str
    prompt: str
    status: str
    error: str | None = None
    duration_ms: int | None = None


class ChatHistoryItem(_HistoryItemBase):
    """Serialized chat request."""

    request_type: Literal["chat"] = "chat"
    response: str | None = None


class FileHistoryItem(_HistoryItemBase):
    """Serialized file analysis request. The on-disk path is never exposed."""

    request_type: Literal["file"] = "file"
    command_name: str | None = None
    file_name: str | None = None
    file_mime: str | None = None
    file_size: int | None = None
    openai_file_id: str | None = None
    result_json: str | None = None


HistoryItem = Annotated[ChatHistoryItem | FileHistoryItem, Field(discriminator="request_type")]


def history_item_from_record(record: RequestHistory) -> ChatHistoryItem | FileHistoryItem:
    """Serialize a row as the variant its request type names.

    Rows written before ``request_type`` existed are chat requests.
    """

    if record.request_type == REQUEST_TYPE_FILE:
        return FileHistoryItem.model_validate(record)
    return ChatHistoryItem(
        id=record.id,
        created_at=record.created_at,
        prompt=record.prompt,
        status=record.status,
        error=record.error,
        duration_ms=record.duration_ms,
        response=record.response,
    )


class HistoryListResponse(BaseModel):
    """History listing, newest first."""

    items: list[HistoryItem]


class HistoryDeleteResponse(BaseModel):
    deleted: bool


class HistoryClearResponse(BaseModel):
    ok: bool = True
