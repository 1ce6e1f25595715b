"""Create reviews table.

Revision ID: 002
Revises: 001
Create Date: 2026-10-17
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
        "reviews",
        sa.Column("review_id", sa.Uuid(), primary_key=True),
        sa.Column("agency_id", sa.Uuid(), sa.ForeignKey("agencies.agency_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("worker_id", sa.Uuid(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column(
            "verification_status",
            sa.Enum("pending", "verified", "unverified", name="verificationstatus"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("is_anonymous", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("helpful_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("report_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "status",
            sa.Enum("active", "hidden", "deleted", name="reviewstatus"),
            nullable=False,
            server_default="active",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating"),
        sa.CheckConstraint("helpful_count >= 0", name="ck_reviews_helpful_count"),
        sa.CheckConstraint("report_count >= 0", name="ck_reviews_report_count"),
        sa.UniqueConstraint("agency_id", "worker_id", name="uq_reviews_agency_worker"),
    )
    op.create_index("ix_reviews_agency_status", "reviews", ["agency_id", "status"])
    op.create_index("ix_reviews_worker_id", "reviews", ["worker_id"])


def downgrade() -> None:
    op.drop_table("reviews")
    op.execute("DROP TYPE IF EXISTS reviewstatus")
    op.execute("DROP TYPE IF EXISTS verificationstatus")
