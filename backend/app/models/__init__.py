"""ORM models package exports."""

from app.models.request_history import RequestHistory

__all__ = [
    "RequestHistory",
]
