"""Agency model.

Agencies are managed elsewhere. This core reads the owner and compliance
columns and is the only writer of the rating aggregate columns.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime, Float, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def empty_distribution() -> dict[str, int]:
    return {str(star): 0 for star in range(1, 6)}


class Agency(Base):
    __tablename__ = "agencies"

    agency_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    owner_worker_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    # Supplied by the external compliance system, 0..1
    compliance_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    # --- Rating aggregate (written only by app.services.aggregation) ---
    rating_distribution: Mapped[dict] = mapped_column(
        JSON, nullable=False, default=empty_distribution
    )
    average_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    verification_ratio: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    trust_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    ratings_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
