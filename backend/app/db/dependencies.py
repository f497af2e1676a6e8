"""FastAPI dependencies for database access."""

from collections.abc import Iterator

from sqlalchemy.orm import Session

from app.db.session import SessionLocal


def get_db() -> Iterator[Session]:
    """Yield one session per request and always close it."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
