"""create notes

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects.postgresql import ARRAY

# revision identifiers, used by Alembic.
revision: str = "3f1c2a9d7b10"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the notes table with its full-text and recency indexes."""
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    op.create_table(
        "notes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("body", sa.String(10000), nullable=False),
        sa.Column(
            "tags",
            ARRAY(sa.String()),
            nullable=False,
            server_default=sa.text("'{}'::varchar[]"),
        ),
        sa.Column("embedding", Vector(1536), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("updated_at >= created_at", name="ck_notes_updated_after_created"),
    )
    op.create_index("ix_notes_created_at", "notes", ["created_at"])

    # Weighted full-text index: must match repositories.notes.search_vector()
    op.execute(
        """
        CREATE INDEX ix_notes_search_vector
        ON notes
        USING gin (
            (setweight(to_tsvector('english'::regconfig, title), 'A')
             || setweight(to_tsvector('english'::regconfig, body), 'B'))
        )
        """
    )


def downgrade() -> None:
    """Drop the notes table."""
    op.execute("DROP INDEX IF EXISTS ix_notes_search_vector")
    op.drop_index("ix_notes_created_at", table_name="notes")
    op.drop_table("notes")
