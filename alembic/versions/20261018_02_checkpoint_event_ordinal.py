"""Checkpoint event ordinal for records sharing one binlog position

Revision ID: 20261018_02
Revises: 20261018_01
Create Date: 2026-10-18
"""
# pylint: disable=no-member,invalid-name,wrong-import-order

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261018_02"
down_revision: Union[str, Sequence[str], None] = "20261018_01"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    op.add_column(
        "transformation_checkpoint",
        sa.Column("event_ordinal", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_check_constraint(
        "ck_transformation_checkpoint_event_ordinal",
        "transformation_checkpoint",
        "event_ordinal >= 0",
    )


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_constraint("ck_transformation_checkpoint_event_ordinal", "transformation_checkpoint", type_="check")
    op.drop_column("transformation_checkpoint", "event_ordinal")
