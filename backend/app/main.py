"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.db.schema_upkeep import ensure_history_schema
from app.db.session import engine
from app.routers import analysis, chat, history

logger = logging.getLogger(__name__)


def _prepare_storage() -> None:
    """Create working directories and bring the history table up to date."""

    settings = get_settings()
    settings.uploads_dir.mkdir(parents=True, exist_ok=True)
    settings.commands_dir.mkdir(parents=True, exist_ok=True)
    try:
        ensure_history_schema(engine)
    except Exception:
        logger.exception("History schema upkeep failed; continuing with the existing schema.")


@asynccontextmanager
async def lifespan(_: FastAPI):
    _prepare_storage()
    yield


app = FastAPI(title=get_settings().app_name, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat.router, tags=["chat"])
app.include_router(analysis.router, tags=["analysis"])
app.include_router(history.router, tags=["history"])


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed requests as 400 with the shared error envelope."""

    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid')}"
        for error in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": f"Invalid request. {details}".strip()})


@app.get("/health")
def health() -> dict[str, str]:
    """Simple health check endpoint."""

    return {"status": "ok"}
