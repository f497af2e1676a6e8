"""File analysis and command discovery routes."""

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.db.dependencies import get_db
from app.errors import DocsiftError, InvalidRequestError
from app.extraction.command_spec import list_command_specs
from app.extraction.openai_client import get_client_factory
from app.schemas.analysis import AnalyzeFileResponse, CommandListResponse
from app.schemas.common import ErrorResponse, error_response
from app.schemas.history import history_item_from_record
from app.services.analysis import ClientFactory, run_file_analysis
from app.services.artifacts import store_upload


router = APIRouter(prefix="/api")


@router.post(
    "/analyze-file",
    response_model=AnalyzeFileResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def analyze_file(
    file: UploadFile | None = File(default=None),
    command: str | None = Form(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    client_factory: ClientFactory = Depends(get_client_factory),
) -> AnalyzeFileResponse | JSONResponse:
    """Extract schema-shaped JSON from an uploaded PDF, DOCX, text file or image."""

    if file is None:
        return error_response(InvalidRequestError("Missing file."))

    try:
        upload = store_upload(
            file.file,
            original_name=file.filename or "upload",
            media_type=file.content_type,
            uploads_dir=settings.uploads_dir,
            max_bytes=settings.max_upload_bytes,
        )
        result, record = run_file_analysis(
            db,
            upload,
            command=command,
            client_factory=client_factory,
            settings=settings,
        )
    except DocsiftError as exc:
        return error_response(exc)
    return AnalyzeFileResponse(result=result, history_item=history_item_from_record(record))


@router.get("/commands", response_model=CommandListResponse)
def get_commands(settings: Settings = Depends(get_settings)) -> CommandListResponse:
    """List the command spec files that can be passed as ``command``."""

    return CommandListResponse(items=list_command_specs(settings.commands_dir))
