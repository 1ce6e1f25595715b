"""Review submission, editing, moderation and voting.

Every mutating entry point runs the same explicit pipeline: sanitize,
validate, persist, then signal the aggregation engine when the change can
affect an agency's rating aggregate.
"""

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    DuplicateReviewError,
    InvalidTransitionError,
    NoRelationshipError,
    ReviewNotFoundError,
    ReviewPermissionError,
    SelfReviewError,
    ValidationError,
)
from app.models.review import ModerationAction, Review, ReviewStatus, VerificationStatus
from app.schemas.review import ReviewCreate, ReviewUpdate
from app.services import aggregation
from app.models.worker_agency_link import RelationshipStatus
from app.services.agency import get_agency, get_relationship_status, is_agency_owner
from app.utils.sanitize import sanitize

logger = logging.getLogger(__name__)

COMMENT_MIN_LENGTH = 10
COMMENT_MAX_LENGTH = 500

# Postgres names the constraint; SQLite names the columns
_DUPLICATE_MARKERS = ("uq_reviews_agency_worker", "reviews.agency_id, reviews.worker_id")

_STATUS_TRANSITIONS = {
    ModerationAction.HIDE: {ReviewStatus.ACTIVE: ReviewStatus.HIDDEN},
    ModerationAction.RESTORE: {ReviewStatus.HIDDEN: ReviewStatus.ACTIVE},
    ModerationAction.SOFT_DELETE: {
        ReviewStatus.ACTIVE: ReviewStatus.DELETED,
        ReviewStatus.HIDDEN: ReviewStatus.DELETED,
    },
}

_VERIFICATION_TRANSITIONS = {
    ModerationAction.VERIFY: {
        VerificationStatus.PENDING: VerificationStatus.VERIFIED,
        VerificationStatus.UNVERIFIED: VerificationStatus.VERIFIED,
    },
    ModerationAction.UNVERIFY: {
        VerificationStatus.PENDING: VerificationStatus.UNVERIFIED,
        VerificationStatus.VERIFIED: VerificationStatus.UNVERIFIED,
    },
}


def validate_rating(rating: object) -> int:
    """Ratings are whole stars from 1 to 5."""
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("rating", "Rating must be a whole number from 1 to 5")
    return rating


def clean_comment(comment: str | None) -> str:
    """Sanitize a comment and enforce its length on the sanitized text."""
    cleaned = sanitize(comment)
    if len(cleaned) < COMMENT_MIN_LENGTH:
        raise ValidationError(
            "comment", f"Comment must be at least {COMMENT_MIN_LENGTH} characters"
        )
    if len(cleaned) > COMMENT_MAX_LENGTH:
        raise ValidationError(
            "comment", f"Comment cannot exceed {COMMENT_MAX_LENGTH} characters"
        )
    return cleaned


def _is_duplicate_review(error: IntegrityError) -> bool:
    message = str(error.orig)
    return any(marker in message for marker in _DUPLICATE_MARKERS)


async def submit_review(
    db: AsyncSession,
    agency_id: uuid.UUID,
    worker_id: uuid.UUID,
    data: ReviewCreate,
) -> Review:
    """Submit a worker's first and only review of an agency."""
    rating = validate_rating(data.rating)
    comment = clean_comment(data.comment)

    await get_agency(db, agency_id)
    if await is_agency_owner(db, agency_id, worker_id):
        raise SelfReviewError()

    relationship = await get_relationship_status(db, agency_id, worker_id)
    if relationship is None:
        raise NoRelationshipError("No verified relationship with this agency")
    if relationship != RelationshipStatus.COMPLETED:
        raise NoRelationshipError("Service must be completed before reviewing")

    now = datetime.now(UTC)
    review = Review(
        review_id=uuid.uuid4(),
        agency_id=agency_id,
        worker_id=worker_id,
        rating=rating,
        comment=comment,
        is_anonymous=data.is_anonymous,
        verification_status=VerificationStatus.PENDING,
        status=ReviewStatus.ACTIVE,
        helpful_count=0,
        report_count=0,
        created_at=now,
        updated_at=now,
    )
    db.add(review)

    # The unique constraint decides concurrent submissions for the same pair
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if not _is_duplicate_review(e):
            raise
        logger.info("Duplicate review rejected for agency %s by worker %s", agency_id, worker_id)
        raise DuplicateReviewError()

    logger.info("Review %s created for agency %s by worker %s", review.review_id, agency_id, worker_id)

    await aggregation.on_review_changed(db, agency_id)
    await db.refresh(review)
    return review


async def get_review(db: AsyncSession, review_id: uuid.UUID) -> Review:
    """Get review by ID, reloading any cached state."""
    result = await db.execute(
        select(Review)
        .where(Review.review_id == review_id)
        .execution_options(populate_existing=True)
    )
    review = result.scalar_one_or_none()
    if review is None:
        raise ReviewNotFoundError()
    return review


async def _lock_review(db: AsyncSession, review_id: uuid.UUID) -> Review:
    result = await db.execute(
        select(Review)
        .where(Review.review_id == review_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    review = result.scalar_one_or_none()
    if review is None:
        raise ReviewNotFoundError()
    return review


async def update_review(
    db: AsyncSession,
    review_id: uuid.UUID,
    worker_id: uuid.UUID,
    data: ReviewUpdate,
) -> Review:
    """Edit the author's own review. Unset fields are left unchanged."""
    review = await _lock_review(db, review_id)
    if review.worker_id != worker_id:
        raise ReviewPermissionError()
    if review.status == ReviewStatus.DELETED:
        raise InvalidTransitionError("edit", review.status.value)

    changes = data.model_dump(exclude_unset=True)

    # Nothing is assigned to the row until every field validates
    rating = comment = None
    if changes.get("rating") is not None:
        rating = validate_rating(changes["rating"])
    if changes.get("comment") is not None:
        comment = clean_comment(changes["comment"])

    rating_changed = rating is not None and rating != review.rating
    if rating is not None:
        review.rating = rating
    if comment is not None:
        review.comment = comment
    if changes.get("is_anonymous") is not None:
        review.is_anonymous = changes["is_anonymous"]

    review.updated_at = datetime.now(UTC)
    await db.commit()
    logger.info("Review %s updated by worker %s", review_id, worker_id)

    if rating_changed:
        await aggregation.on_review_changed(db, review.agency_id)
        await db.refresh(review)
    return review


async def moderate_review(
    db: AsyncSession,
    review_id: uuid.UUID,
    action: ModerationAction,
) -> Review:
    """Apply a moderation action. Authorization is checked by the caller.

    Deleted reviews are terminal: every action on them is rejected.
    """
    review = await _lock_review(db, review_id)
    if review.status == ReviewStatus.DELETED:
        raise InvalidTransitionError(action.value, review.status.value)

    if action in _STATUS_TRANSITIONS:
        target = _STATUS_TRANSITIONS[action].get(review.status)
        if target is None:
            raise InvalidTransitionError(action.value, review.status.value)
        review.status = target
    elif action in _VERIFICATION_TRANSITIONS:
        target = _VERIFICATION_TRANSITIONS[action].get(review.verification_status)
        if target is None:
            raise InvalidTransitionError(action.value, review.verification_status.value)
        review.verification_status = target
    else:
        review.report_count = 0

    review.updated_at = datetime.now(UTC)
    await db.commit()
    logger.info("Review %s moderated: %s", review_id, action.value)

    if action != ModerationAction.CLEAR_REPORTS:
        await aggregation.on_review_changed(db, review.agency_id)
        await db.refresh(review)
    return review


async def _increment_counter(db: AsyncSession, review_id: uuid.UUID, column, verb: str) -> Review:
    """Increment a counter in SQL so concurrent votes are never lost."""
    result = await db.execute(
        update(Review)
        .where(Review.review_id == review_id, Review.status != ReviewStatus.DELETED)
        .values({column: column + 1, Review.updated_at: datetime.now(UTC)})
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        review = await get_review(db, review_id)
        raise InvalidTransitionError(verb, review.status.value)
    await db.commit()
    return await get_review(db, review_id)


async def mark_helpful(db: AsyncSession, review_id: uuid.UUID) -> Review:
    return await _increment_counter(db, review_id, Review.helpful_count, "vote on")


async def report_review(db: AsyncSession, review_id: uuid.UUID) -> Review:
    review = await _increment_counter(db, review_id, Review.report_count, "report")
    logger.info("Review %s reported (%d reports)", review_id, review.report_count)
    return review


async def get_reviews_for_agency(
    db: AsyncSession, agency_id: uuid.UUID, limit: int = 20, offset: int = 0
) -> list[Review]:
    """Get an agency's active reviews, newest first."""
    await get_agency(db, agency_id)
    result = await db.execute(
        select(Review)
        .where(Review.agency_id == agency_id, Review.status == ReviewStatus.ACTIVE)
        .order_by(Review.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())


async def get_reviews_by_worker(db: AsyncSession, worker_id: uuid.UUID) -> list[Review]:
    """A worker's own reviews, including hidden ones, newest first. Deleted reviews are omitted."""
    result = await db.execute(
        select(Review)
        .where(Review.worker_id == worker_id, Review.status != ReviewStatus.DELETED)
        .order_by(Review.created_at.desc())
    )
    return list(result.scalars().all())
