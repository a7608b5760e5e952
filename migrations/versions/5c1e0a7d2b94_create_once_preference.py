"""create once_preference

Revision ID: 5c1e0a7d2b94
Revises:
Create Date: 2026-10-18 09:12:44.318207

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e0a7d2b94"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the key-value table holding gate entries."""
    op.create_table(
        "once_preference",
        sa.Column("key", sa.Text(), nullable=False),
        sa.Column("int_value", sa.BigInteger(), nullable=True),
        sa.Column("str_value", sa.Text(), nullable=True),
        sa.CheckConstraint(
            "(int_value IS NULL) <> (str_value IS NULL)",
            name="ck_once_preference_single_value",
        ),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    """Drop the gate entry table."""
    op.drop_table("once_preference")
