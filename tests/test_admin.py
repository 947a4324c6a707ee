"""Tests for admin endpoints and the public service catalogue."""

import uuid

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.provider import ServiceStatus
from app.models.user import User, UserRole
from tests.conftest import Marketplace, TEST_PASSWORD, auth_headers, create_service, create_user, job_payload


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> User:
    user = await create_user(db_session, UserRole.ADMIN)
    await db_session.commit()
    return user


@pytest.mark.asyncio
async def test_create_service(client: AsyncClient, admin: User) -> None:
    payload = {"name": "Gutter Cleaning", "category": "Exterior"}
    resp = await client.post("/admin/services", json=payload, headers=auth_headers(admin))
    assert resp.status_code == 201
    assert resp.json()["status"] == "approved"

    resp = await client.post("/admin/services", json=payload, headers=auth_headers(admin))
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_catalogue_hides_pending_services(
    client: AsyncClient, db_session: AsyncSession,
) -> None:
    await create_service(db_session, name="Roof Repair", category="Exterior")
    await create_service(db_session, name="Pool Care", category="Exterior", status=ServiceStatus.PENDING)
    await create_service(db_session, name="Faucet Repair", category="Plumbing")

    resp = await client.get("/services")
    assert [s["name"] for s in resp.json()] == ["Roof Repair", "Faucet Repair"]

    resp = await client.get("/services?category=Plumbing")
    assert [s["name"] for s in resp.json()] == ["Faucet Repair"]


@pytest.mark.asyncio
async def test_create_lsm(client: AsyncClient, admin: User) -> None:
    payload = {
        "email": "Morgan@Example.com",
        "password": TEST_PASSWORD,
        "first_name": "Morgan",
        "last_name": "Lee",
        "region": "central",
    }
    resp = await client.post("/admin/lsms", json=payload, headers=auth_headers(admin))
    assert resp.status_code == 201
    assert resp.json()["region"] == "central"
    assert resp.json()["closed_deals_count"] == 0

    resp = await client.post("/auth/login", json={"email": "morgan@example.com", "password": TEST_PASSWORD})
    assert resp.status_code == 200

    payload["email"] = "other@example.com"
    resp = await client.post("/admin/lsms", json=payload, headers=auth_headers(admin))
    assert resp.status_code == 409

    resp = await client.get("/admin/lsms", headers=auth_headers(admin))
    assert [m["region"] for m in resp.json()] == ["central"]


@pytest.mark.asyncio
async def test_ban_and_unban_customer(
    client: AsyncClient, admin: User, market: Marketplace,
) -> None:
    customer_id = market.customer.customer_id
    resp = await client.post(f"/admin/customers/{customer_id}/ban", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.json()["status"] == "banned"

    resp = await client.post("/jobs", json=job_payload(market), headers=market.customer_headers)
    assert resp.status_code == 403

    resp = await client.post(f"/admin/customers/{customer_id}/unban", headers=auth_headers(admin))
    assert resp.json()["status"] == "active"

    resp = await client.post("/jobs", json=job_payload(market), headers=market.customer_headers)
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_ban_unknown_customer(client: AsyncClient, admin: User) -> None:
    resp = await client.post(f"/admin/customers/{uuid.uuid4()}/ban", headers=auth_headers(admin))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_admin_routes_require_admin(client: AsyncClient, market: Marketplace) -> None:
    for headers in (market.customer_headers, market.provider_headers, market.lsm_headers):
        resp = await client.post(
            "/admin/services", json={"name": "X", "category": "Y"}, headers=headers,
        )
        assert resp.status_code == 403
