"""Test configuration and fixtures.

Each test gets its own SQLite database file (via aiosqlite), so tests are
isolated without transaction tricks and concurrent sessions really contend
on the same file. Set TEST_DATABASE_URL to run against Postgres instead.
"""

import math
import uuid
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.models.agency import Agency
from app.models.worker_agency_link import RelationshipStatus, WorkerAgencyLink
from app.redis import get_redis
from app.services.secrets import get_secret
from app.utils.crypto import PIICipher, get_cipher

TEST_PII_KEY = "test-pii-encryption-key"
TEST_PII_SALT = "salt"

VALID_COMMENT = "Paid on time and the contract matched the offer."


# ---------------------------------------------------------------------------
# Settings and caches
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_settings() -> None:
    """Snapshot settings before each test and restore after to prevent mutation bleed."""
    original = settings.model_dump()
    object.__setattr__(settings, "secrets_backend", "env")
    object.__setattr__(settings, "pii_encryption_key", TEST_PII_KEY)
    object.__setattr__(settings, "pii_kdf_salt", TEST_PII_SALT)
    get_secret.cache_clear()
    get_cipher.cache_clear()
    yield  # type: ignore[misc]
    for key, value in original.items():
        object.__setattr__(settings, key, value)
    get_secret.cache_clear()
    get_cipher.cache_clear()


@pytest.fixture(scope="session")
def cipher() -> PIICipher:
    """Key derivation is deliberately slow, so derive the test key once."""
    return PIICipher(TEST_PII_KEY, TEST_PII_SALT)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    url = settings.test_database_url or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    engine = create_async_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------

class TokenBucketRedis:
    """In-memory stand-in for the rate limiter's single Redis call.

    Mirrors the Lua token bucket: ``eval`` returns ``[allowed, remaining, retry_after]``.
    """

    def __init__(self) -> None:
        self.buckets: dict[str, tuple[float, float]] = {}
        self.keys: list[str] = []

    async def eval(self, script: str, numkeys: int, key: str, capacity: int, refill_rate: int, now: float) -> list[int]:
        self.keys.append(key)
        tokens, last_refill = self.buckets.get(key, (float(capacity), now))
        tokens = min(capacity, tokens + (now - last_refill) * (refill_rate / 60.0))
        if tokens >= 1:
            self.buckets[key] = (tokens - 1, now)
            return [1, math.floor(tokens - 1), 0]
        self.buckets[key] = (tokens, now)
        retry_after = math.ceil((1 - tokens) * 60 / refill_rate) if refill_rate > 0 else 60
        return [0, 0, retry_after]


@pytest.fixture
def fake_redis() -> TokenBucketRedis:
    return TokenBucketRedis()


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    fake_redis: TokenBucketRedis,
    cipher: PIICipher,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP test client with overridden DB, Redis and cipher dependencies."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    async def override_get_redis() -> AsyncGenerator[TokenBucketRedis, None]:
        yield fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_cipher] = lambda: cipher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def make_agency(
    db: AsyncSession,
    owner_worker_id: uuid.UUID | None = None,
    compliance_score: float | None = None,
    name: str = "Test Recruitment Ltd",
) -> Agency:
    """Insert an agency row as the external agency system would."""
    agency = Agency(
        agency_id=uuid.uuid4(),
        name=name,
        owner_worker_id=owner_worker_id,
        compliance_score=compliance_score,
    )
    db.add(agency)
    await db.commit()
    return agency


async def link_worker(
    db: AsyncSession,
    agency_id: uuid.UUID,
    worker_id: uuid.UUID | None = None,
    status: RelationshipStatus = RelationshipStatus.COMPLETED,
) -> uuid.UUID:
    """Record a placement between a worker and an agency; returns the worker id."""
    worker_id = worker_id or uuid.uuid4()
    db.add(WorkerAgencyLink(agency_id=agency_id, worker_id=worker_id, status=status))
    await db.commit()
    return worker_id


def make_review_data(
    rating: int = 5,
    comment: str = VALID_COMMENT,
    is_anonymous: bool = False,
) -> dict:
    """Factory for review submission payload."""
    return {"rating": rating, "comment": comment, "is_anonymous": is_anonymous}


def worker_headers(worker_id: uuid.UUID | str) -> dict[str, str]:
    return {"X-Worker-Id": str(worker_id)}
