"""Request history ORM model."""

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, IdMixin

REQUEST_TYPE_CHAT = "chat"
REQUEST_TYPE_FILE = "file"
STATUS_SUCCESS = "success"
STATUS_ERROR = "error"


class RequestHistory(Base, IdMixin):
    """One completed chat or file request, successful or failed.

    Rows are inserted once, fully formed, after the outcome is known. Columns
    past ``duration_ms`` were added after the table first shipped and stay
    nullable; a null value means "not applicable to this request type".
    """

    __tablename__ = "request_history"

    created_at: Mapped[str] = mapped_column(Text, nullable=False)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    response: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    request_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    command_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_mime: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    file_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    openai_file_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    result_json: Mapped[str | None] = mapped_column(Text, nullable=True)
