"""Agency rating aggregate and trust score.

The aggregate is always recomputed in full from the agency's active reviews,
never patched from a delta, so repeated or missed triggers converge on the
same result.
"""

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import AggregationInconsistencyError, AgencyNotFoundError, ValidationError
from app.models.agency import Agency
from app.models.review import Review, ReviewStatus, VerificationStatus
from app.services.agency import get_agency, get_compliance_input

logger = logging.getLogger(__name__)

STARS = range(1, 6)

# Trust score weights, summing to 1
W_RATING = 0.5
W_VERIFICATION = 0.2
W_COMPLIANCE = 0.3


@dataclass(frozen=True)
class AgencyAggregate:
    distribution: dict[int, int]
    average_rating: float
    total_reviews: int
    verification_ratio: float
    trust_score: float
    updated_at: datetime | None = field(default=None, compare=False)

    @classmethod
    def from_agency(cls, agency: Agency) -> "AgencyAggregate":
        stored = agency.rating_distribution or {}
        return cls(
            distribution={star: int(stored.get(str(star), 0)) for star in STARS},
            average_rating=agency.average_rating,
            total_reviews=agency.total_reviews,
            verification_ratio=agency.verification_ratio,
            trust_score=agency.trust_score,
            updated_at=agency.ratings_updated_at,
        )


def _check_compliance_input(compliance_input: float) -> None:
    if not 0.0 <= compliance_input <= 1.0:
        raise ValidationError("compliance_input", "Compliance input must be between 0 and 1")


def compute_aggregate(
    rows: Iterable[tuple[int, VerificationStatus, int]],
    compliance_input: float,
) -> AgencyAggregate:
    """Build the aggregate from (rating, verification_status, count) groups of active reviews."""
    _check_compliance_input(compliance_input)

    distribution = {star: 0 for star in STARS}
    verified = 0
    for rating, verification_status, count in rows:
        if rating not in distribution:
            raise AggregationInconsistencyError(f"Active review with rating {rating} outside 1..5")
        distribution[rating] += count
        if verification_status == VerificationStatus.VERIFIED:
            verified += count

    total = sum(distribution.values())
    if total == 0:
        average = 0.0
        ratio = 0.0
    else:
        average = sum(star * n for star, n in distribution.items()) / total
        ratio = verified / total

    score = W_RATING * (average / 5) + W_VERIFICATION * ratio + W_COMPLIANCE * compliance_input
    trust = min(max(score, 0.0), 1.0) * 10

    return AgencyAggregate(
        distribution=distribution,
        average_rating=round(average, 3),
        total_reviews=total,
        verification_ratio=round(ratio, 3),
        trust_score=round(trust, 2),
    )


async def _recompute_once(
    db: AsyncSession, agency_id: uuid.UUID, compliance_input: float | None
) -> AgencyAggregate:
    # Row lock serializes aggregate writers for this agency
    result = await db.execute(
        select(Agency).where(Agency.agency_id == agency_id).with_for_update()
    )
    agency = result.scalar_one_or_none()
    if agency is None:
        raise AgencyNotFoundError()

    if compliance_input is None:
        compliance_input = await get_compliance_input(db, agency_id)

    active = (Review.agency_id == agency_id, Review.status == ReviewStatus.ACTIVE)
    grouped = await db.execute(
        select(Review.rating, Review.verification_status, func.count())
        .where(*active)
        .group_by(Review.rating, Review.verification_status)
    )
    aggregate = compute_aggregate(grouped.all(), compliance_input)

    # Cross-check against an independent count of the same review set
    count_result = await db.execute(select(func.count()).select_from(Review).where(*active))
    active_count = count_result.scalar_one()
    if active_count != aggregate.total_reviews:
        raise AggregationInconsistencyError(
            f"Distribution totals {aggregate.total_reviews} but {active_count} reviews are active"
        )

    now = datetime.now(UTC)
    agency.rating_distribution = {str(star): n for star, n in aggregate.distribution.items()}
    agency.average_rating = aggregate.average_rating
    agency.total_reviews = aggregate.total_reviews
    agency.verification_ratio = aggregate.verification_ratio
    agency.trust_score = aggregate.trust_score
    agency.ratings_updated_at = now
    await db.commit()
    return replace(aggregate, updated_at=now)


async def recompute_agency_rating(
    db: AsyncSession,
    agency_id: uuid.UUID,
    compliance_input: float | None = None,
) -> AgencyAggregate:
    """Recompute and store an agency's aggregate from its active reviews.

    When compliance_input is omitted the agency's published compliance score
    is used. An inconsistent read is retried with a fresh full recompute up to
    ``settings.aggregation_max_attempts`` times.
    """
    if compliance_input is not None:
        _check_compliance_input(compliance_input)

    attempts = max(1, settings.aggregation_max_attempts)
    attempt = 1
    while True:
        try:
            aggregate = await _recompute_once(db, agency_id, compliance_input)
            break
        except AggregationInconsistencyError as e:
            await db.rollback()
            if attempt >= attempts:
                raise
            logger.warning(
                "Inconsistent aggregate for agency %s (attempt %d/%d): %s",
                agency_id, attempt, attempts, e,
            )
            attempt += 1

    logger.info(
        "Recomputed agency %s rating: %d reviews, avg=%.3f, trust=%.2f",
        agency_id, aggregate.total_reviews, aggregate.average_rating, aggregate.trust_score,
    )
    return aggregate


async def on_review_changed(db: AsyncSession, agency_id: uuid.UUID) -> AgencyAggregate | None:
    """Signal that an agency's review set changed.

    The review write has already been committed; an aggregate that stays
    inconsistent is logged and healed by the next recompute.
    """
    try:
        return await recompute_agency_rating(db, agency_id)
    except AggregationInconsistencyError:
        logger.error(
            "Aggregate for agency %s still inconsistent after %d attempts, leaving it for the next recompute",
            agency_id, settings.aggregation_max_attempts,
        )
        return None


async def get_agency_rating(db: AsyncSession, agency_id: uuid.UUID) -> AgencyAggregate:
    """Read the stored aggregate for an agency."""
    agency = await get_agency(db, agency_id)
    return AgencyAggregate.from_agency(agency)
