"""Pydantic v2 schemas for Reviews and agency rating aggregates."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator

from app.models.review import ModerationAction

# Raw comments are bounded before sanitization; the 10..500 rule applies after it.
MAX_RAW_COMMENT_LENGTH = 4096


class ReviewCreate(BaseModel):
    rating: StrictInt
    comment: str = Field(..., max_length=MAX_RAW_COMMENT_LENGTH)
    is_anonymous: bool = False


class ReviewUpdate(BaseModel):
    rating: StrictInt | None = None
    comment: str | None = Field(None, max_length=MAX_RAW_COMMENT_LENGTH)
    is_anonymous: bool | None = None


class ModerationRequest(BaseModel):
    action: ModerationAction


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    review_id: uuid.UUID
    agency_id: uuid.UUID
    worker_id: uuid.UUID | None
    rating: int
    comment: str
    verification_status: str
    is_anonymous: bool
    helpful_count: int
    report_count: int
    status: str
    created_at: datetime
    updated_at: datetime

    @field_validator("verification_status", "status", mode="before")
    @classmethod
    def serialize_enum(cls, v: object) -> str:
        if hasattr(v, "value"):
            return v.value
        return str(v)


class AggregateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    distribution: dict[int, int]
    average_rating: float
    total_reviews: int
    verification_ratio: float
    trust_score: float = Field(..., ge=0, le=10)
    updated_at: datetime | None = None


class RecomputeRequest(BaseModel):
    compliance_input: float | None = Field(None, ge=0, le=1)
