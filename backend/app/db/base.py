"""SQLAlchemy metadata registry import for Alembic."""

from app.models import RequestHistory
from app.models.base import Base

__all__ = ["Base", "RequestHistory"]
