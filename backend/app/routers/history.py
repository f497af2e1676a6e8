"""Request history routes."""

from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.db.dependencies import get_db
from app.errors import InvalidRequestError
from app.schemas.common import ErrorResponse, error_response
from app.schemas.history import (
    HistoryClearResponse,
    HistoryDeleteResponse,
    HistoryListResponse,
    history_item_from_record,
)
from app.services.history import clamp_history_limit, clear_history, delete_history_item, list_history


router = APIRouter(prefix="/api")

_MAX_ROW_ID = 2**63 - 1


@router.get("/history", response_model=HistoryListResponse)
def get_history(
    limit: int | None = Query(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> HistoryListResponse:
    """List recorded requests, newest first."""

    effective_limit = clamp_history_limit(
        limit,
        default=settings.history_default_limit,
        maximum=settings.history_max_limit,
    )
    return HistoryListResponse(items=[history_item_from_record(record) for record in list_history(db, effective_limit)])


@router.delete(
    "/history/{item_id}",
    response_model=HistoryDeleteResponse,
    responses={400: {"model": ErrorResponse}},
)
def delete_history_entry(
    item_id: str = Path(...),
    db: Session = Depends(get_db),
) -> HistoryDeleteResponse | JSONResponse:
    """Delete one record and its uploaded file."""

    try:
        parsed_id = int(item_id)
    except ValueError:
        return error_response(InvalidRequestError("Invalid id."))
    if not -_MAX_ROW_ID - 1 <= parsed_id <= _MAX_ROW_ID:
        return error_response(InvalidRequestError("Invalid id."))
    return HistoryDeleteResponse(deleted=delete_history_item(db, parsed_id))


@router.delete("/history", response_model=HistoryClearResponse)
def clear_history_entries(db: Session = Depends(get_db)) -> HistoryClearResponse:
    """Delete every record and every uploaded file they reference."""

    clear_history(db)
    return HistoryClearResponse(ok=True)
