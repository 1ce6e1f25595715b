"""Agency rating aggregate endpoints."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rate_limit import check_rate_limit
from app.database import get_db
from app.schemas.review import AggregateResponse, RecomputeRequest
from app.services import aggregation

router = APIRouter(tags=["agencies"])


@router.get(
    "/agencies/{agency_id}/rating",
    response_model=AggregateResponse,
    dependencies=[Depends(check_rate_limit)],
)
async def get_agency_rating(
    agency_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> AggregateResponse:
    """Get the stored rating distribution, average and trust score."""
    aggregate = await aggregation.get_agency_rating(db, agency_id)
    return AggregateResponse.model_validate(aggregate)


@router.post(
    "/agencies/{agency_id}/rating/recompute",
    response_model=AggregateResponse,
    dependencies=[Depends(check_rate_limit)],
)
async def recompute_agency_rating(
    agency_id: uuid.UUID,
    data: RecomputeRequest | None = None,
    db: AsyncSession = Depends(get_db),
) -> AggregateResponse:
    """Force a full recompute, optionally with an explicit compliance input."""
    compliance_input = data.compliance_input if data is not None else None
    aggregate = await aggregation.recompute_agency_rating(db, agency_id, compliance_input)
    return AggregateResponse.model_validate(aggregate)
