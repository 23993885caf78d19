"""Create device_identity table

Revision ID: 002
Revises: 001
Create Date: 2026-09-28 00:00:01.000000+00:00

What:  Single-row table holding the anonymous uid and refresh token issued to
       this device. Notes are owned by that uid.

Rollback: dropping the table forgets the identity; the next note access
signs up again and earlier notes become unreachable from this device.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "device_identity",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("uid", sa.Text(), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("device_identity")
