"""Review endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.middleware import AuthenticatedWorker, verify_request
from app.auth.rate_limit import check_rate_limit
from app.database import get_db
from app.models.review import Review
from app.schemas.review import (
    ModerationRequest,
    ReviewCreate,
    ReviewResponse,
    ReviewUpdate,
)
from app.services import review as review_service

router = APIRouter(tags=["reviews"])


def _public_view(review: Review) -> ReviewResponse:
    """Withhold the author of anonymous reviews from public listings."""
    response = ReviewResponse.model_validate(review)
    if review.is_anonymous:
        response.worker_id = None
    return response


@router.post(
    "/agencies/{agency_id}/reviews",
    response_model=ReviewResponse,
    status_code=201,
    dependencies=[Depends(check_rate_limit)],
)
async def submit_review(
    agency_id: uuid.UUID,
    data: ReviewCreate,
    auth: AuthenticatedWorker = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
) -> ReviewResponse:
    """Submit a review of an agency."""
    review = await review_service.submit_review(db, agency_id, auth.worker_id, data)
    return ReviewResponse.model_validate(review)


@router.get(
    "/agencies/{agency_id}/reviews",
    response_model=list[ReviewResponse],
    dependencies=[Depends(check_rate_limit)],
)
async def get_agency_reviews(
    agency_id: uuid.UUID,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> list[ReviewResponse]:
    """Get an agency's active reviews."""
    reviews = await review_service.get_reviews_for_agency(db, agency_id, limit, offset)
    return [_public_view(r) for r in reviews]


@router.get(
    "/reviews/{review_id}",
    response_model=ReviewResponse,
    dependencies=[Depends(check_rate_limit)],
)
async def get_review(
    review_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> ReviewResponse:
    review = await review_service.get_review(db, review_id)
    return _public_view(review)


@router.patch(
    "/reviews/{review_id}",
    response_model=ReviewResponse,
    dependencies=[Depends(check_rate_limit)],
)
async def update_review(
    review_id: uuid.UUID,
    data: ReviewUpdate,
    auth: AuthenticatedWorker = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
) -> ReviewResponse:
    """Edit your own review."""
    review = await review_service.update_review(db, review_id, auth.worker_id, data)
    return ReviewResponse.model_validate(review)


@router.post(
    "/reviews/{review_id}/moderation",
    response_model=ReviewResponse,
    dependencies=[Depends(check_rate_limit)],
)
async def moderate_review(
    review_id: uuid.UUID,
    data: ModerationRequest,
    db: AsyncSession = Depends(get_db),
) -> ReviewResponse:
    """Apply a moderation action. Moderator authorization is enforced upstream."""
    review = await review_service.moderate_review(db, review_id, data.action)
    return ReviewResponse.model_validate(review)


@router.post(
    "/reviews/{review_id}/helpful",
    response_model=ReviewResponse,
    dependencies=[Depends(check_rate_limit)],
)
async def mark_helpful(
    review_id: uuid.UUID,
    auth: AuthenticatedWorker = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
) -> ReviewResponse:
    review = await review_service.mark_helpful(db, review_id)
    return _public_view(review)


@router.post(
    "/reviews/{review_id}/report",
    response_model=ReviewResponse,
    dependencies=[Depends(check_rate_limit)],
)
async def report_review(
    review_id: uuid.UUID,
    auth: AuthenticatedWorker = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
) -> ReviewResponse:
    review = await review_service.report_review(db, review_id)
    return _public_view(review)
