"""Test configuration and fixtures.

Each test runs against its own in-memory SQLite database (aiosqlite) with the
full schema created up front. Postgres-only column types are compiled to
their SQLite equivalents. Redis is replaced by an AsyncMock so the suite
needs no running services; rate limiting stays off unless a test enables it.
"""

import uuid
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.pool import StaticPool

from app.auth.tokens import create_access_token, hash_password
from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.models.customer import Customer, CustomerStatus
from app.models.provider import (
    LocalServiceManager,
    ProviderService,
    ProviderStatus,
    Service,
    ServiceArea,
    ServiceProvider,
    ServiceStatus,
)
from app.models.user import User, UserRole
from app.redis import get_redis


@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_, compiler, **kw):  # type: ignore[no-untyped-def]
    return "JSON"


TEST_PASSWORD = "correct-horse-battery"
# Hashed once; bcrypt at 12 rounds is too slow to repeat per user
_TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_settings() -> None:
    """Snapshot settings before each test and restore after to prevent mutation bleed."""
    original = settings.model_dump()
    object.__setattr__(settings, "rate_limit_enabled", False)
    object.__setattr__(settings, "response_timeout_enabled", False)
    object.__setattr__(settings, "email_backend", "log")
    object.__setattr__(settings, "storage_backend", "local")
    yield  # type: ignore[misc]
    for key, value in original.items():
        object.__setattr__(settings, key, value)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # SQLite does not enforce foreign keys by default
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_fk(dbapi_conn, _):  # type: ignore[no-untyped-def]
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def redis_mock() -> AsyncMock:
    """Stand-in Redis client. ``eval`` answers like an always-full token bucket."""
    mock = AsyncMock()
    mock.eval.return_value = [1, 99, 0]
    return mock


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    redis_mock: AsyncMock,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP test client with overridden DB and Redis dependencies."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def override_get_redis() -> AsyncGenerator[AsyncMock, None]:
        yield redis_mock

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.user_id, user.role.value)}"}


async def create_user(
    db: AsyncSession,
    role: UserRole,
    email: str | None = None,
    first_name: str = "Test",
    last_name: str = "User",
) -> User:
    user = User(
        user_id=uuid.uuid4(),
        email=email or f"{role.value}-{uuid.uuid4().hex[:8]}@example.com",
        password_hash=_TEST_PASSWORD_HASH,
        first_name=first_name,
        last_name=last_name,
        role=role,
    )
    db.add(user)
    await db.flush()
    return user


async def create_service(
    db: AsyncSession,
    name: str | None = None,
    category: str = "Plumbing",
    status: ServiceStatus = ServiceStatus.APPROVED,
) -> Service:
    service = Service(
        service_id=uuid.uuid4(),
        name=name or f"Toilet Repair {uuid.uuid4().hex[:6]}",
        category=category,
        status=status,
    )
    db.add(service)
    await db.commit()
    return service


async def create_lsm(db: AsyncSession, region: str | None = None) -> LocalServiceManager:
    user = await create_user(db, UserRole.LSM, first_name="Lena", last_name="Manager")
    lsm = LocalServiceManager(
        lsm_id=uuid.uuid4(),
        user_id=user.user_id,
        region=region or f"region-{uuid.uuid4().hex[:6]}",
    )
    db.add(lsm)
    await db.commit()
    return lsm


async def create_provider(
    db: AsyncSession,
    lsm: LocalServiceManager,
    services: list[Service] | None = None,
    zipcodes: list[str] | None = None,
    status: ProviderStatus = ProviderStatus.ACTIVE,
    business_name: str = "Ace Plumbing",
) -> ServiceProvider:
    user = await create_user(db, UserRole.PROVIDER, first_name="Pat", last_name="Provider")
    provider = ServiceProvider(
        provider_id=uuid.uuid4(),
        user_id=user.user_id,
        lsm_id=lsm.lsm_id,
        business_name=business_name,
        status=status,
    )
    db.add(provider)
    await db.flush()
    for i, zipcode in enumerate(zipcodes or ["10001"]):
        db.add(ServiceArea(provider_id=provider.provider_id, zipcode=zipcode, is_primary=(i == 0)))
    for service in services or []:
        db.add(ProviderService(provider_id=provider.provider_id, service_id=service.service_id))
    await db.commit()
    return provider


async def create_customer(
    db: AsyncSession, status: CustomerStatus = CustomerStatus.ACTIVE
) -> Customer:
    user = await create_user(db, UserRole.CUSTOMER, first_name="Casey", last_name="Customer")
    customer = Customer(
        customer_id=uuid.uuid4(),
        user_id=user.user_id,
        address="1 Main St",
        status=status,
    )
    db.add(customer)
    await db.commit()
    return customer


async def user_of(db: AsyncSession, user_id: uuid.UUID) -> User:
    return await db.get(User, user_id)


@dataclass
class Marketplace:
    """One region with an LSM, an approved service, an active provider and a customer."""
    lsm: LocalServiceManager
    service: Service
    provider: ServiceProvider
    customer: Customer
    lsm_user: User
    provider_user: User
    customer_user: User

    @property
    def customer_headers(self) -> dict[str, str]:
        return auth_headers(self.customer_user)

    @property
    def provider_headers(self) -> dict[str, str]:
        return auth_headers(self.provider_user)

    @property
    def lsm_headers(self) -> dict[str, str]:
        return auth_headers(self.lsm_user)


@pytest_asyncio.fixture
async def market(db_session: AsyncSession) -> Marketplace:
    lsm = await create_lsm(db_session, region="north")
    service = await create_service(db_session, name="Toilet Repair")
    provider = await create_provider(db_session, lsm, services=[service])
    customer = await create_customer(db_session)
    return Marketplace(
        lsm=lsm,
        service=service,
        provider=provider,
        customer=customer,
        lsm_user=await user_of(db_session, lsm.user_id),
        provider_user=await user_of(db_session, provider.user_id),
        customer_user=await user_of(db_session, customer.user_id),
    )


def job_payload(market: Marketplace, **overrides: object) -> dict:
    """Factory for a job request payload."""
    data: dict = {
        "provider_id": str(market.provider.provider_id),
        "service_id": str(market.service.service_id),
        "location": "12 Elm Street",
        "zipcode": "10001",
        "answers": {"fixture_type": "toilet", "urgency": "this week"},
        "customer_budget": "200.00",
    }
    data.update(overrides)
    return data


async def create_job_via_api(client: AsyncClient, market: Marketplace, **overrides: object) -> dict:
    resp = await client.post("/jobs", json=job_payload(market, **overrides), headers=market.customer_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def accept_and_close(client: AsyncClient, market: Marketplace, job_id: str) -> dict:
    """Drive a new job to in_progress."""
    resp = await client.post(
        f"/jobs/{job_id}/respond", json={"action": "accept"}, headers=market.provider_headers,
    )
    assert resp.status_code == 200, resp.text
    resp = await client.post(
        f"/jobs/{job_id}/action", json={"action": "close_deal"}, headers=market.customer_headers,
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


async def complete_and_pay(client: AsyncClient, market: Marketplace, job_id: str) -> dict:
    """Drive an in-progress job to paid."""
    resp = await client.post(
        f"/jobs/{job_id}/status", json={"action": "mark_complete"}, headers=market.provider_headers,
    )
    assert resp.status_code == 200, resp.text
    resp = await client.post(
        f"/jobs/{job_id}/status",
        json={"action": "mark_payment", "payment_details": {"method": "cash"}},
        headers=market.provider_headers,
    )
    assert resp.status_code == 200, resp.text
    return resp.json()
