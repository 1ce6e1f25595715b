"""Pydantic v2 schemas for worker identity fields."""

import uuid

from pydantic import BaseModel, Field


class IdentityUpdate(BaseModel):
    value: str | None = Field(None, max_length=64)


class IdentityResponse(BaseModel):
    worker_id: uuid.UUID
    field: str
    value: str | None


class MaskedIdentityResponse(BaseModel):
    worker_id: uuid.UUID
    passport_number: str | None
    nid_number: str | None
