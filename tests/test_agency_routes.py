"""HTTP tests for agency rating endpoints."""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tests.conftest import link_worker, make_agency, make_review_data, worker_headers


@pytest.mark.asyncio
async def test_rating_of_new_agency(client: AsyncClient, db_session: AsyncSession) -> None:
    agency = await make_agency(db_session)

    resp = await client.get(f"/agencies/{agency.agency_id}/rating")
    assert resp.status_code == 200
    data = resp.json()
    assert data["distribution"] == {"1": 0, "2": 0, "3": 0, "4": 0, "5": 0}
    assert data["total_reviews"] == 0
    assert data["average_rating"] == 0.0
    assert data["trust_score"] == 0.0
    assert data["updated_at"] is None


@pytest.mark.asyncio
async def test_rating_unknown_agency(client: AsyncClient) -> None:
    resp = await client.get(f"/agencies/{uuid.uuid4()}/rating")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_rating_reflects_reviews(client: AsyncClient, db_session: AsyncSession) -> None:
    agency = await make_agency(db_session, compliance_score=0.5)
    for rating in (5, 4, 3):
        resp = await client.post(
            f"/agencies/{agency.agency_id}/reviews",
            json=make_review_data(rating=rating),
            headers=worker_headers(await link_worker(db_session, agency.agency_id)),
        )
        assert resp.status_code == 201

    data = (await client.get(f"/agencies/{agency.agency_id}/rating")).json()
    assert data["total_reviews"] == 3
    assert data["average_rating"] == pytest.approx(4.0)
    assert data["verification_ratio"] == 0.0
    # 0.5 * 0.8 + 0.3 * 0.5
    assert data["trust_score"] == pytest.approx(5.5)
    assert data["updated_at"] is not None


@pytest.mark.asyncio
async def test_recompute_endpoint(client: AsyncClient, db_session: AsyncSession) -> None:
    agency = await make_agency(db_session)
    await client.post(
        f"/agencies/{agency.agency_id}/reviews",
        json=make_review_data(rating=5),
        headers=worker_headers(await link_worker(db_session, agency.agency_id)),
    )

    resp = await client.post(f"/agencies/{agency.agency_id}/rating/recompute")
    assert resp.status_code == 200
    assert resp.json()["trust_score"] == pytest.approx(5.0)

    resp = await client.post(
        f"/agencies/{agency.agency_id}/rating/recompute", json={"compliance_input": 1.0}
    )
    assert resp.status_code == 200
    assert resp.json()["trust_score"] == pytest.approx(8.0)


@pytest.mark.asyncio
async def test_recompute_rejects_bad_compliance(client: AsyncClient, db_session: AsyncSession) -> None:
    agency = await make_agency(db_session)
    resp = await client.post(
        f"/agencies/{agency.agency_id}/rating/recompute", json={"compliance_input": 1.5}
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_recompute_inconsistency_returns_503(
    client: AsyncClient, db_session: AsyncSession, monkeypatch: pytest.MonkeyPatch
) -> None:
    from app.services import aggregation

    agency = await make_agency(db_session)
    real_compute = aggregation.compute_aggregate
    monkeypatch.setattr(
        aggregation, "compute_aggregate", lambda rows, c: real_compute([(0, None, 1)], c)
    )

    resp = await client.post(f"/agencies/{agency.agency_id}/rating/recompute")
    assert resp.status_code == 503
