"""Worker-scoped endpoints: encrypted identity fields and the worker's own reviews."""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.middleware import AuthenticatedWorker, verify_request
from app.auth.rate_limit import check_rate_limit
from app.database import get_db
from app.models.worker_profile import IdentityField
from app.schemas.review import ReviewResponse
from app.schemas.worker_profile import IdentityResponse, IdentityUpdate, MaskedIdentityResponse
from app.services import review as review_service
from app.services import worker_profile as profile_service
from app.utils.crypto import PIICipher, get_cipher

router = APIRouter(tags=["workers"], dependencies=[Depends(check_rate_limit)])


def _require_owner(worker_id: uuid.UUID, auth: AuthenticatedWorker) -> None:
    if auth.worker_id != worker_id:
        raise HTTPException(status_code=403, detail="Only available to the worker themselves")


@router.get("/workers/{worker_id}/reviews", response_model=list[ReviewResponse])
async def get_worker_reviews(
    worker_id: uuid.UUID,
    auth: AuthenticatedWorker = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
) -> list[ReviewResponse]:
    """Your own reviews, including hidden ones."""
    _require_owner(worker_id, auth)
    reviews = await review_service.get_reviews_by_worker(db, worker_id)
    return [ReviewResponse.model_validate(r) for r in reviews]


@router.get("/workers/{worker_id}/identity", response_model=MaskedIdentityResponse)
async def get_masked_identity(
    worker_id: uuid.UUID,
    auth: AuthenticatedWorker = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
    cipher: PIICipher = Depends(get_cipher),
) -> MaskedIdentityResponse:
    """Masked identity numbers, e.g. ``****4567``."""
    _require_owner(worker_id, auth)
    return MaskedIdentityResponse(
        worker_id=worker_id,
        passport_number=await profile_service.get_masked_identity(
            db, cipher, worker_id, IdentityField.PASSPORT_NUMBER
        ),
        nid_number=await profile_service.get_masked_identity(
            db, cipher, worker_id, IdentityField.NID_NUMBER
        ),
    )


@router.get("/workers/{worker_id}/identity/{field}", response_model=IdentityResponse)
async def get_identity(
    worker_id: uuid.UUID,
    field: IdentityField,
    auth: AuthenticatedWorker = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
    cipher: PIICipher = Depends(get_cipher),
) -> IdentityResponse:
    """Decrypted identity number."""
    _require_owner(worker_id, auth)
    value = await profile_service.get_identity(db, cipher, worker_id, field)
    return IdentityResponse(worker_id=worker_id, field=field.value, value=value)


@router.put("/workers/{worker_id}/identity/{field}", status_code=204)
async def set_identity(
    worker_id: uuid.UUID,
    field: IdentityField,
    data: IdentityUpdate,
    auth: AuthenticatedWorker = Depends(verify_request),
    db: AsyncSession = Depends(get_db),
    cipher: PIICipher = Depends(get_cipher),
) -> None:
    """Store an identity number encrypted. An empty value clears it."""
    _require_owner(worker_id, auth)
    await profile_service.set_identity(db, cipher, worker_id, field, data.value)
