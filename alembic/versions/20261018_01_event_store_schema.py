"""Event store schema: domain event log, dead letters, checkpoint

Revision ID: 20261018_01
Revises: None
Create Date: 2026-10-18
"""
# pylint: disable=no-member,invalid-name,wrong-import-order

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261018_01"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "domain_event_log",
        sa.Column("event_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("event_type", sa.Text(), nullable=False),
        sa.Column("event_category", sa.Text(), nullable=False),
        sa.Column("aggregate_type", sa.Text(), nullable=False),
        sa.Column("aggregate_id", sa.Text(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column("source_position", sa.Text(), nullable=False),
        sa.Column("occurred_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("envelope", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("delivered_at_utc", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at_utc", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("version >= 1", name="ck_domain_event_log_version"),
    )
    op.create_index(
        "ix_domain_event_log_aggregate",
        "domain_event_log",
        ["aggregate_type", "aggregate_id", "occurred_at_utc"],
    )
    op.create_index("ix_domain_event_log_event_type", "domain_event_log", ["event_type"])
    op.create_index(
        "ix_domain_event_log_undelivered",
        "domain_event_log",
        ["created_at_utc"],
        postgresql_where=sa.text("delivered_at_utc IS NULL"),
    )

    op.create_table(
        "dead_letter_event",
        sa.Column(
            "dead_letter_id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("failure_kind", sa.Text(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("detector_name", sa.Text(), nullable=False),
        sa.Column("event_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("event_type", sa.Text(), nullable=False),
        sa.Column("candidate", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("change_event", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("attempt_count", sa.Integer(), nullable=False),
        sa.Column("diagnostics", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("recorded_at_utc", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "failure_kind in ('enrichment_exhausted', 'validation_rejected')",
            name="ck_dead_letter_event_failure_kind",
        ),
        sa.CheckConstraint("attempt_count >= 1", name="ck_dead_letter_event_attempt_count"),
    )
    op.create_index("ix_dead_letter_event_recorded_at_utc", "dead_letter_event", ["recorded_at_utc"])
    op.create_index("ix_dead_letter_event_event_id", "dead_letter_event", ["event_id"])

    op.create_table(
        "transformation_checkpoint",
        sa.Column("pipeline_name", sa.Text(), primary_key=True),
        sa.Column("log_file", sa.Text(), nullable=False),
        sa.Column("log_offset", sa.BigInteger(), nullable=False),
        sa.Column("row_index", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("updated_at_utc", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("log_offset >= 0", name="ck_transformation_checkpoint_log_offset"),
        sa.CheckConstraint("row_index >= 0", name="ck_transformation_checkpoint_row_index"),
    )


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_table("transformation_checkpoint")
    op.drop_index("ix_dead_letter_event_event_id", table_name="dead_letter_event")
    op.drop_index("ix_dead_letter_event_recorded_at_utc", table_name="dead_letter_event")
    op.drop_table("dead_letter_event")
    op.drop_index("ix_domain_event_log_undelivered", table_name="domain_event_log")
    op.drop_index("ix_domain_event_log_event_type", table_name="domain_event_log")
    op.drop_index("ix_domain_event_log_aggregate", table_name="domain_event_log")
    op.drop_table("domain_event_log")
