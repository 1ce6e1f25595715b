"""Create worker_agency_links table read by the review eligibility check.

Revision ID: 004
Revises: 003
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "worker_agency_links",
        sa.Column("link_id", sa.Uuid(), primary_key=True),
        sa.Column("agency_id", sa.Uuid(), sa.ForeignKey("agencies.agency_id", ondelete="CASCADE"), nullable=False),
        sa.Column("worker_id", sa.Uuid(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("active", "completed", "terminated", name="relationshipstatus"),
            nullable=False,
            server_default="completed",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("agency_id", "worker_id", name="uq_worker_agency_links_pair"),
    )
    op.create_index("ix_worker_agency_links_agency_id", "worker_agency_links", ["agency_id"])
    op.create_index("ix_worker_agency_links_worker_id", "worker_agency_links", ["worker_id"])


def downgrade() -> None:
    op.drop_table("worker_agency_links")
    op.execute("DROP TYPE IF EXISTS relationshipstatus")
