"""Encrypted storage of worker identity numbers.

Identity values cross this module's boundary as plaintext only in the
arguments and return values of the calling request; they are encrypted before
they reach the session and never logged.
"""

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.worker_profile import IdentityField, WorkerProfile
from app.utils.crypto import PIICipher, mask_identity

logger = logging.getLogger(__name__)


async def _get_profile(db: AsyncSession, worker_id: uuid.UUID) -> WorkerProfile | None:
    result = await db.execute(
        select(WorkerProfile).where(WorkerProfile.worker_id == worker_id)
    )
    return result.scalar_one_or_none()


async def _lock_profile(db: AsyncSession, worker_id: uuid.UUID) -> WorkerProfile:
    result = await db.execute(
        select(WorkerProfile)
        .where(WorkerProfile.worker_id == worker_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _ensure_profile(db: AsyncSession, worker_id: uuid.UUID) -> None:
    """Create the worker's profile row if it does not exist yet.

    Two first writes for the same worker race on the primary key; the loser
    rolls back its empty row and both continue against the winner's.
    """
    if await _get_profile(db, worker_id) is not None:
        return
    now = datetime.now(UTC)
    db.add(WorkerProfile(worker_id=worker_id, created_at=now, updated_at=now))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("Worker %s profile created concurrently", worker_id)


async def set_identity(
    db: AsyncSession,
    cipher: PIICipher,
    worker_id: uuid.UUID,
    field: IdentityField,
    plaintext: str | None,
) -> None:
    """Encrypt and store an identity number. Empty values clear the field."""
    token = cipher.encrypt(plaintext) or None

    await _ensure_profile(db, worker_id)

    # Only this field's column is written, so concurrent writes to other fields survive
    profile = await _lock_profile(db, worker_id)
    setattr(profile, field.value, token)
    profile.updated_at = datetime.now(UTC)
    await db.commit()
    logger.info(
        "Worker %s identity field %s %s", worker_id, field.value, "set" if token else "cleared"
    )


async def get_identity(
    db: AsyncSession,
    cipher: PIICipher,
    worker_id: uuid.UUID,
    field: IdentityField,
) -> str | None:
    """Read and decrypt an identity number. Returns None if it was never set."""
    profile = await _get_profile(db, worker_id)
    if profile is None:
        return None
    return cipher.decrypt(getattr(profile, field.value))


async def get_masked_identity(
    db: AsyncSession,
    cipher: PIICipher,
    worker_id: uuid.UUID,
    field: IdentityField,
) -> str | None:
    """Identity number with all but the last four characters hidden."""
    return mask_identity(await get_identity(db, cipher, worker_id, field))
