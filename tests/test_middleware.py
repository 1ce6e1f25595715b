"""Tests for application middleware (body size limit, security headers)."""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from tests.conftest import link_worker, make_agency, make_review_data, worker_headers


@pytest.mark.asyncio
async def test_security_headers_present(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.headers["x-content-type-options"] == "nosniff"
    assert resp.headers["x-frame-options"] == "DENY"
    assert resp.headers["referrer-policy"] == "no-referrer"
    assert "cache-control" not in resp.headers


@pytest.mark.asyncio
async def test_security_headers_on_error_response(client: AsyncClient) -> None:
    resp = await client.get(f"/reviews/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.headers["x-content-type-options"] == "nosniff"
    assert resp.headers["x-frame-options"] == "DENY"


@pytest.mark.asyncio
async def test_worker_paths_not_cacheable(client: AsyncClient) -> None:
    worker_id = uuid.uuid4()
    resp = await client.get(f"/workers/{worker_id}/identity", headers=worker_headers(worker_id))
    assert resp.status_code == 200
    assert resp.headers["cache-control"] == "no-store"
    assert resp.headers["pragma"] == "no-cache"


@pytest.mark.asyncio
async def test_worker_paths_not_cacheable_on_denial(client: AsyncClient) -> None:
    resp = await client.get(f"/workers/{uuid.uuid4()}/identity", headers=worker_headers(uuid.uuid4()))
    assert resp.status_code == 403
    assert resp.headers["cache-control"] == "no-store"


@pytest.mark.asyncio
async def test_body_size_limit_exceeded(client: AsyncClient) -> None:
    resp = await client.post(
        f"/agencies/{uuid.uuid4()}/reviews",
        content=b"x",
        headers={"Content-Length": str(settings.max_request_body_bytes + 1), "Content-Type": "application/json"},
    )
    assert resp.status_code == 413


@pytest.mark.asyncio
async def test_body_size_invalid_content_length(client: AsyncClient) -> None:
    resp = await client.post(
        f"/agencies/{uuid.uuid4()}/reviews",
        content=b"{}",
        headers={"Content-Length": "lots", "Content-Type": "application/json"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_body_size_limit_within_range(client: AsyncClient, db_session: AsyncSession) -> None:
    agency = await make_agency(db_session)
    resp = await client.post(
        f"/agencies/{agency.agency_id}/reviews",
        json=make_review_data(),
        headers=worker_headers(await link_worker(db_session, agency.agency_id)),
    )
    assert resp.status_code == 201
