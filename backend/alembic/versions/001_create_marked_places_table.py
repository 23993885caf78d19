"""Create marked_places table

Revision ID: 001
Revises: None
Create Date: 2026-09-28 00:00:00.000000+00:00

What:  The local durable copy of the user's marked places.
How:   Surrogate autoincrement key for storage order; place_id carries the
       UNIQUE constraint that the gateway's ON CONFLICT DO NOTHING relies on.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "marked_places",
        sa.Column("mp_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("place_id", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False, server_default=sa.text("''")),
        # Six decimal places is ~0.11 m at the equator.
        sa.Column("latitude", sa.Numeric(9, 6), nullable=False),
        sa.Column("longitude", sa.Numeric(9, 6), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("mp_id"),
        sa.UniqueConstraint("place_id", name="uq_marked_places_place_id"),
    )


def downgrade() -> None:
    """Drops every marked place."""
    op.drop_table("marked_places")
