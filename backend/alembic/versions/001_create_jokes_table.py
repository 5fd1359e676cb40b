"""Create jokes table

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  Creates the `jokes` table.
How:   Portable column types (Integer identity, Text, timezone-aware DateTime)
       so the same revision runs on SQLite and PostgreSQL.

Rollback: downgrade() drops the table entirely (destructive — all data lost).
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
    """Create the jokes table and its created_at index."""
    op.create_table(
        "jokes",

        sa.Column(
            "id",
            sa.Integer(),
            autoincrement=True,
            nullable=False,
        ),

        sa.Column(
            "text",
            sa.Text(),
            nullable=False,
            comment="Joke body",
        ),

        sa.Column(
            "author",
            sa.Text(),
            nullable=True,
            comment="Optional attribution",
        ),

        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="When this joke was created (UTC)",
        ),

        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index(
        "idx_jokes_created_at",
        "jokes",
        ["created_at"],
    )


def downgrade() -> None:
    """Drop the jokes table entirely."""
    op.drop_index("idx_jokes_created_at", table_name="jokes")
    op.drop_table("jokes")
