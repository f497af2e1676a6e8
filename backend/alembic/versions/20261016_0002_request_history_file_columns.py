"""add request type and file analysis columns to request history

Revision ID: 20261016_0002
Revises: 20261015_0001
Create Date: 2026-10-16 00:00:02
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261016_0002"
down_revision: str | None = "20261015_0001"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

_FILE_COLUMNS: tuple[tuple[str, sa.types.TypeEngine], ...] = (
    ("request_type", sa.String(length=16)),
    ("command_name", sa.Text()),
    ("file_name", sa.Text()),
    ("file_mime", sa.Text()),
    ("file_size", sa.Integer()),
    ("file_path", sa.Text()),
    ("openai_file_id", sa.Text()),
    ("result_json", sa.Text()),
)


def upgrade() -> None:
    for name, column_type in _FILE_COLUMNS:
        op.add_column("request_history", sa.Column(name, column_type, nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("request_history") as batch_op:
        for name, _ in reversed(_FILE_COLUMNS):
            batch_op.drop_column(name)
