"""Free-text chat routes."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.db.dependencies import get_db
from app.errors import DocsiftError
from app.extraction.openai_client import get_client_factory
from app.schemas.chat import ChatRequest, ChatResponse
from app.schemas.common import ErrorResponse, error_response
from app.schemas.history import history_item_from_record
from app.services.analysis import ClientFactory, run_chat_request


router = APIRouter(prefix="/api")


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def create_chat(
    payload: ChatRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    client_factory: ClientFactory = Depends(get_client_factory),
) -> ChatResponse | JSONResponse:
    """Send a prompt to the text-generation service and record the outcome."""

    try:
        output, record = run_chat_request(
            db,
            payload.prompt,
            client_factory=client_factory,
            chat_model=settings.openai_chat_model,
        )
    except DocsiftError as exc:
        return error_response(exc)
    return ChatResponse(output=output, history_item=history_item_from_record(record))
