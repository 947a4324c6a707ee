"""Tests for job chats and participant messaging."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.chat import format_job_details_message, humanize_key
from tests.conftest import Marketplace, auth_headers, create_customer, create_job_via_api, user_of


def test_humanize_key() -> None:
    assert humanize_key("fixture_type") == "Fixture Type"


def test_format_job_details_message() -> None:
    body = format_job_details_message(
        service_name="Toilet Repair",
        location="12 Elm Street",
        zipcode="10001",
        answers={"fixture_type": "toilet"},
        budget=None,
        preferred_date=None,
        image_count=2,
    )
    lines = body.splitlines()
    assert lines[0] == "New Toilet Repair Request"
    assert "Customer Budget" not in body
    assert "Customer uploaded 2 image(s) to support this request" in lines
    assert lines[-1] == "  - Fixture Type: toilet"


async def _chat_id(client: AsyncClient, market: Marketplace) -> str:
    resp = await client.get("/chats", headers=market.customer_headers)
    assert resp.status_code == 200
    return resp.json()[0]["chat_id"]


@pytest.mark.asyncio
async def test_participants_exchange_messages(client: AsyncClient, market: Marketplace) -> None:
    await create_job_via_api(client, market)
    chat_id = await _chat_id(client, market)

    resp = await client.post(
        f"/chats/{chat_id}/messages", json={"body": "Can you come Tuesday?"},
        headers=market.customer_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["sender_type"] == "customer"

    resp = await client.post(
        f"/chats/{chat_id}/messages", json={"body": "Yes, 9am works."},
        headers=market.provider_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["sender_type"] == "service_provider"

    resp = await client.get(f"/chats/{chat_id}/messages", headers=market.provider_headers)
    bodies = [m["body"] for m in resp.json()]
    assert bodies[0].startswith("New Toilet Repair Request")
    assert bodies[-2:] == ["Can you come Tuesday?", "Yes, 9am works."]


@pytest.mark.asyncio
async def test_outsider_cannot_read_chat(
    client: AsyncClient, db_session: AsyncSession, market: Marketplace,
) -> None:
    await create_job_via_api(client, market)
    chat_id = await _chat_id(client, market)
    stranger = await create_customer(db_session)
    headers = auth_headers(await user_of(db_session, stranger.user_id))

    assert (await client.get(f"/chats/{chat_id}/messages", headers=headers)).status_code == 403
    assert (await client.get("/chats", headers=headers)).json() == []


@pytest.mark.asyncio
async def test_cancelled_job_chat_is_read_only(client: AsyncClient, market: Marketplace) -> None:
    job = await create_job_via_api(client, market)
    chat_id = await _chat_id(client, market)
    await client.post(
        f"/jobs/{job['job_id']}/action",
        json={"action": "cancel", "cancellation_reason": "No longer needed"},
        headers=market.customer_headers,
    )
    resp = await client.post(
        f"/chats/{chat_id}/messages", json={"body": "Hello?"}, headers=market.provider_headers,
    )
    assert resp.status_code == 400
    resp = await client.get(f"/chats/{chat_id}/messages", headers=market.customer_headers)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_system_message_type_not_allowed(client: AsyncClient, market: Marketplace) -> None:
    await create_job_via_api(client, market)
    chat_id = await _chat_id(client, market)
    resp = await client.post(
        f"/chats/{chat_id}/messages", json={"body": "spoof", "message_type": "system"},
        headers=market.customer_headers,
    )
    assert resp.status_code == 422
