"""Read-only lookups against agencies: ownership, placements and compliance input."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import AgencyNotFoundError
from app.models.agency import Agency
from app.models.worker_agency_link import RelationshipStatus, WorkerAgencyLink

logger = logging.getLogger(__name__)


async def get_agency(db: AsyncSession, agency_id: uuid.UUID) -> Agency:
    """Get agency by ID."""
    result = await db.execute(select(Agency).where(Agency.agency_id == agency_id))
    agency = result.scalar_one_or_none()
    if agency is None:
        raise AgencyNotFoundError()
    return agency


async def is_agency_owner(
    db: AsyncSession, agency_id: uuid.UUID, worker_id: uuid.UUID
) -> bool:
    """Whether the worker owns or operates the agency."""
    result = await db.execute(
        select(Agency.owner_worker_id).where(Agency.agency_id == agency_id)
    )
    owner_id = result.scalar_one_or_none()
    return owner_id is not None and owner_id == worker_id


async def get_compliance_input(db: AsyncSession, agency_id: uuid.UUID) -> float:
    """Compliance signal in [0, 1] as last published by the compliance system.

    Agencies without a published score count as 0. Out-of-range values are
    clamped rather than trusted.
    """
    result = await db.execute(
        select(Agency.compliance_score).where(Agency.agency_id == agency_id)
    )
    score = result.scalar_one_or_none()
    if score is None:
        return 0.0
    if not 0.0 <= score <= 1.0:
        logger.warning("Agency %s has out-of-range compliance score %s", agency_id, score)
        return min(max(score, 0.0), 1.0)
    return score


async def get_relationship_status(
    db: AsyncSession, agency_id: uuid.UUID, worker_id: uuid.UUID
) -> RelationshipStatus | None:
    """Status of the worker's placement with the agency, or None if there never was one."""
    result = await db.execute(
        select(WorkerAgencyLink.status).where(
            WorkerAgencyLink.agency_id == agency_id,
            WorkerAgencyLink.worker_id == worker_id,
        )
    )
    return result.scalar_one_or_none()
