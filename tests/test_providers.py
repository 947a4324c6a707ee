"""Tests for provider self-management and LSM oversight."""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification
from app.models.provider import ProviderStatus, ServiceStatus
from tests.conftest import Marketplace, auth_headers, create_lsm, create_provider, create_service, user_of


@pytest.mark.asyncio
async def test_profile(client: AsyncClient, market: Marketplace) -> None:
    resp = await client.get("/providers/me", headers=market.provider_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["provider"]["status"] == "active"
    assert data["provider"]["warnings"] == 0
    assert data["service_ids"] == [str(market.service.service_id)]
    assert data["zipcodes"] == ["10001"]


@pytest.mark.asyncio
async def test_profile_requires_provider(client: AsyncClient, market: Marketplace) -> None:
    resp = await client.get("/providers/me", headers=market.customer_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_add_service(
    client: AsyncClient, db_session: AsyncSession, market: Marketplace,
) -> None:
    drain = await create_service(db_session, name="Drain Cleaning")
    resp = await client.post(
        "/providers/me/services", json={"service_id": str(drain.service_id)},
        headers=market.provider_headers,
    )
    assert resp.status_code == 201
    assert str(drain.service_id) in resp.json()["service_ids"]

    resp = await client.post(
        "/providers/me/services", json={"service_id": str(drain.service_id)},
        headers=market.provider_headers,
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_add_unknown_or_pending_service(
    client: AsyncClient, db_session: AsyncSession, market: Marketplace,
) -> None:
    resp = await client.post(
        "/providers/me/services", json={"service_id": str(uuid.uuid4())},
        headers=market.provider_headers,
    )
    assert resp.status_code == 404

    pending = await create_service(db_session, status=ServiceStatus.PENDING)
    resp = await client.post(
        "/providers/me/services", json={"service_id": str(pending.service_id)},
        headers=market.provider_headers,
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_replace_service_areas(client: AsyncClient, market: Marketplace) -> None:
    resp = await client.put(
        "/providers/me/service-areas",
        json={"zipcodes": ["10002", "10003", "10002"], "primary_zipcode": "10003"},
        headers=market.provider_headers,
    )
    assert resp.status_code == 200
    # Primary first, duplicates dropped
    assert resp.json()["zipcodes"] == ["10003", "10002"]


@pytest.mark.asyncio
async def test_primary_zipcode_must_be_listed(client: AsyncClient, market: Marketplace) -> None:
    resp = await client.put(
        "/providers/me/service-areas",
        json={"zipcodes": ["10002"], "primary_zipcode": "99999"},
        headers=market.provider_headers,
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_lsm_lists_region_providers(
    client: AsyncClient, db_session: AsyncSession, market: Marketplace,
) -> None:
    pending = await create_provider(db_session, market.lsm, status=ProviderStatus.PENDING)
    elsewhere = await create_lsm(db_session, region="south")
    await create_provider(db_session, elsewhere)

    resp = await client.get("/lsm/providers", headers=market.lsm_headers)
    assert resp.status_code == 200
    assert {p["provider_id"] for p in resp.json()} == {
        str(market.provider.provider_id), str(pending.provider_id),
    }

    resp = await client.get("/lsm/providers?status=pending", headers=market.lsm_headers)
    assert [p["provider_id"] for p in resp.json()] == [str(pending.provider_id)]


@pytest.mark.asyncio
async def test_lsm_activates_provider(
    client: AsyncClient, db_session: AsyncSession, market: Marketplace,
) -> None:
    pending = await create_provider(db_session, market.lsm, status=ProviderStatus.PENDING)
    resp = await client.patch(
        f"/lsm/providers/{pending.provider_id}/status", json={"status": "active"},
        headers=market.lsm_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "active"

    titles = (await db_session.execute(
        select(Notification.title).where(Notification.recipient_user_id == pending.user_id)
    )).scalars().all()
    assert titles == ["Account Status Updated"]


@pytest.mark.asyncio
async def test_lsm_cannot_manage_other_region(
    client: AsyncClient, db_session: AsyncSession, market: Marketplace,
) -> None:
    other = await create_lsm(db_session, region="west")
    resp = await client.patch(
        f"/lsm/providers/{market.provider.provider_id}/status", json={"status": "inactive"},
        headers=auth_headers(await user_of(db_session, other.user_id)),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_banned_provider_not_reactivated(
    client: AsyncClient, db_session: AsyncSession, market: Marketplace,
) -> None:
    banned = await create_provider(db_session, market.lsm, status=ProviderStatus.BANNED)
    resp = await client.patch(
        f"/lsm/providers/{banned.provider_id}/status", json={"status": "active"},
        headers=market.lsm_headers,
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_status_update_rejects_banned_value(client: AsyncClient, market: Marketplace) -> None:
    resp = await client.patch(
        f"/lsm/providers/{market.provider.provider_id}/status", json={"status": "banned"},
        headers=market.lsm_headers,
    )
    assert resp.status_code == 422
