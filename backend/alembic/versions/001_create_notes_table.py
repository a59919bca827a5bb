"""Create notes table

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the `notes` table holding each principal's notes.
How:   UUID primary key, owner column from the token subject, timezone-aware
       timestamps, and a composite (owner_id, created_at) index for the
       "my notes, newest first" listing.

Rollback: downgrade() drops the table and all note data with it.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "notes",
        sa.Column(
            "id",
            sa.Uuid(as_uuid=True),
            nullable=False,
            comment="Unique note identifier",
        ),
        sa.Column(
            "owner_id",
            sa.String(128),
            nullable=False,
            comment="Principal id (token subject) of the note's creator",
        ),
        sa.Column(
            "title",
            sa.String(100),
            nullable=False,
            comment="Trimmed note title",
        ),
        sa.Column(
            "content",
            sa.Text(),
            nullable=False,
            comment="Note body",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="When this note was created (UTC)",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="When this note was last modified (UTC)",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index("ix_notes_owner_id", "notes", ["owner_id"])
    op.create_index(
        "idx_notes_owner_created_at",
        "notes",
        ["owner_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("idx_notes_owner_created_at", table_name="notes")
    op.drop_index("ix_notes_owner_id", table_name="notes")
    op.drop_table("notes")
