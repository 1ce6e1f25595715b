"""Worker-agency relationship, maintained by the placement system.

A worker may review an agency only once the placement behind this link is
completed. This core reads the table and never writes it.
"""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Enum, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class RelationshipStatus(enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    TERMINATED = "terminated"


class WorkerAgencyLink(Base):
    __tablename__ = "worker_agency_links"
    __table_args__ = (
        UniqueConstraint("agency_id", "worker_id", name="uq_worker_agency_links_pair"),
    )

    link_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    agency_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("agencies.agency_id", ondelete="CASCADE"), nullable=False, index=True
    )
    worker_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    status: Mapped[RelationshipStatus] = mapped_column(
        Enum(RelationshipStatus, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=RelationshipStatus.COMPLETED,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
