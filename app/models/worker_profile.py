"""Worker profile model holding encrypted identity numbers."""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class IdentityField(enum.Enum):
    PASSPORT_NUMBER = "passport_number"
    NID_NUMBER = "nid_number"


class WorkerProfile(Base):
    __tablename__ = "worker_profiles"

    worker_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    # ivHex:cipherHex tokens, never plaintext
    passport_number: Mapped[str | None] = mapped_column(String(512), nullable=True)
    nid_number: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
