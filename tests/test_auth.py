"""Tests for registration, login, token refresh and bearer authentication."""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.tokens import create_access_token, create_refresh_token
from app.models.provider import ProviderService, ServiceArea, ServiceProvider
from tests.conftest import create_lsm, create_service


def _customer_data(email: str = "casey@example.com") -> dict:
    return {
        "email": email,
        "password": "s3cret-password",
        "first_name": "Casey",
        "last_name": "Jones",
        "address": "1 Main St",
    }


@pytest.mark.asyncio
async def test_register_customer(client: AsyncClient) -> None:
    resp = await client.post("/auth/register/customer", json=_customer_data("Casey@Example.com "))
    assert resp.status_code == 201
    data = resp.json()
    assert data["email"] == "casey@example.com"
    assert data["role"] == "customer"
    assert "password_hash" not in data


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient) -> None:
    resp = await client.post("/auth/register/customer", json=_customer_data())
    assert resp.status_code == 201
    resp = await client.post("/auth/register/customer", json=_customer_data())
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_register_rejects_short_password(client: AsyncClient) -> None:
    data = _customer_data()
    data["password"] = "short"
    resp = await client.post("/auth/register/customer", json=data)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_register_provider_pending_under_region_lsm(
    client: AsyncClient, db_session: AsyncSession,
) -> None:
    lsm = await create_lsm(db_session, region="south")
    service = await create_service(db_session)
    resp = await client.post("/auth/register/provider", json={
        "email": "pat@example.com",
        "password": "s3cret-password",
        "first_name": "Pat",
        "last_name": "Pipes",
        "business_name": "Pat's Pipes",
        "region": "south",
        "zipcodes": ["20001", "20002", "20001"],
        "service_ids": [str(service.service_id)],
    })
    assert resp.status_code == 201
    assert resp.json()["role"] == "service_provider"

    provider = (await db_session.execute(
        select(ServiceProvider).where(ServiceProvider.user_id == uuid.UUID(resp.json()["user_id"]))
    )).scalar_one()
    assert provider.status.value == "pending"
    assert provider.lsm_id == lsm.lsm_id

    areas = (await db_session.execute(
        select(ServiceArea).where(ServiceArea.provider_id == provider.provider_id)
    )).scalars().all()
    assert sorted(a.zipcode for a in areas) == ["20001", "20002"]
    assert [a.zipcode for a in areas if a.is_primary] == ["20001"]

    offered = (await db_session.execute(
        select(ProviderService.service_id).where(ProviderService.provider_id == provider.provider_id)
    )).scalars().all()
    assert offered == [service.service_id]


@pytest.mark.asyncio
async def test_register_provider_unknown_region(client: AsyncClient) -> None:
    resp = await client.post("/auth/register/provider", json={
        "email": "pat@example.com",
        "password": "s3cret-password",
        "first_name": "Pat",
        "last_name": "Pipes",
        "region": "nowhere",
    })
    assert resp.status_code == 400
    assert "nowhere" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_register_provider_unknown_service(
    client: AsyncClient, db_session: AsyncSession,
) -> None:
    await create_lsm(db_session, region="south")
    resp = await client.post("/auth/register/provider", json={
        "email": "pat@example.com",
        "password": "s3cret-password",
        "first_name": "Pat",
        "last_name": "Pipes",
        "region": "south",
        "service_ids": [str(uuid.uuid4())],
    })
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_login_and_me(client: AsyncClient) -> None:
    await client.post("/auth/register/customer", json=_customer_data())
    resp = await client.post("/auth/login", json={
        "email": "casey@example.com", "password": "s3cret-password",
    })
    assert resp.status_code == 200
    tokens = resp.json()
    assert tokens["token_type"] == "bearer"
    assert tokens["expires_in_seconds"] == 3600

    resp = await client.get("/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert resp.status_code == 200
    me = resp.json()
    assert me["user"]["email"] == "casey@example.com"
    assert me["customer_id"] is not None
    assert me["provider_id"] is None
    assert me["lsm_id"] is None


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient) -> None:
    await client.post("/auth/register/customer", json=_customer_data())
    resp = await client.post("/auth/login", json={
        "email": "casey@example.com", "password": "wrong-password",
    })
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_login_unknown_email(client: AsyncClient) -> None:
    resp = await client.post("/auth/login", json={
        "email": "nobody@example.com", "password": "whatever123",
    })
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_refresh_issues_new_tokens(client: AsyncClient) -> None:
    await client.post("/auth/register/customer", json=_customer_data())
    tokens = (await client.post("/auth/login", json={
        "email": "casey@example.com", "password": "s3cret-password",
    })).json()
    resp = await client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 200
    assert resp.json()["access_token"] != tokens["access_token"]


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(client: AsyncClient) -> None:
    token = create_access_token(uuid.uuid4(), "customer")
    resp = await client.post("/auth/refresh", json={"refresh_token": token})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_refresh_token_not_accepted_as_bearer(client: AsyncClient) -> None:
    await client.post("/auth/register/customer", json=_customer_data())
    tokens = (await client.post("/auth/login", json={
        "email": "casey@example.com", "password": "s3cret-password",
    })).json()
    resp = await client.get("/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_missing_token(client: AsyncClient) -> None:
    resp = await client.get("/auth/me")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_garbage_token(client: AsyncClient) -> None:
    resp = await client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_token_for_deleted_user(client: AsyncClient) -> None:
    token = create_refresh_token(uuid.uuid4(), "customer")
    resp = await client.post("/auth/refresh", json={"refresh_token": token})
    assert resp.status_code == 401
