"""Tests for the provider response deadline sweep."""

import uuid
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.job import Job
from app.models.notification import Notification
from app.services.response_timeouts import TIMEOUT_REASON, expire_overdue_requests, find_overdue_jobs
from app.utils.dates import utcnow
from tests.conftest import Marketplace, create_job_via_api


def _after_deadline() -> datetime:
    return utcnow() + timedelta(days=1)


async def _titles(db: AsyncSession, user_id: uuid.UUID) -> list[str]:
    result = await db.execute(
        select(Notification.title).where(Notification.recipient_user_id == user_id)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_nothing_overdue_before_deadline(
    client: AsyncClient, db_session: AsyncSession, market: Marketplace,
) -> None:
    await create_job_via_api(client, market)
    assert await find_overdue_jobs(db_session, utcnow()) == []
    assert await expire_overdue_requests(db_session, utcnow()) == 0


@pytest.mark.asyncio
async def test_overdue_request_flagged(
    client: AsyncClient, db_session: AsyncSession, market: Marketplace,
) -> None:
    created = await create_job_via_api(client, market)

    assert await expire_overdue_requests(db_session, _after_deadline()) == 1

    job = await db_session.get(Job, uuid.UUID(created["job_id"]))
    assert job.rejection_reason == TIMEOUT_REASON
    assert job.status.value == "new"
    assert market.provider.warnings == 1
    assert "Job Response Timeout" in await _titles(db_session, market.customer.user_id)
    assert "Response Deadline Missed" in await _titles(db_session, market.provider.user_id)
    assert "Provider Review Required" not in await _titles(db_session, market.lsm.user_id)

    # Already flagged jobs are not processed twice
    assert await expire_overdue_requests(db_session, _after_deadline()) == 0
    assert market.provider.warnings == 1


@pytest.mark.asyncio
async def test_warning_limit_escalates_to_lsm(
    client: AsyncClient, db_session: AsyncSession, market: Marketplace,
) -> None:
    market.provider.warnings = 2
    await db_session.commit()
    await create_job_via_api(client, market)

    await expire_overdue_requests(db_session, _after_deadline())

    assert market.provider.warnings == 3
    assert "Provider Review Required" in await _titles(db_session, market.lsm.user_id)


@pytest.mark.asyncio
async def test_accepted_or_negotiating_requests_skipped(
    client: AsyncClient, db_session: AsyncSession, market: Marketplace,
) -> None:
    created = await create_job_via_api(client, market)
    resp = await client.post(
        f"/jobs/{created['job_id']}/respond", json={"action": "accept"},
        headers=market.provider_headers,
    )
    assert resp.status_code == 200

    assert await expire_overdue_requests(db_session, _after_deadline()) == 0
    assert market.provider.warnings == 0


@pytest.mark.asyncio
async def test_resend_rearms_deadline(
    client: AsyncClient, db_session: AsyncSession, market: Marketplace,
) -> None:
    created = await create_job_via_api(client, market)
    await expire_overdue_requests(db_session, _after_deadline())

    resp = await client.post(f"/jobs/{created['job_id']}/resend", headers=market.customer_headers)
    assert resp.status_code == 200

    job = await db_session.get(Job, uuid.UUID(created["job_id"]))
    assert job.rejection_reason is None
    # The new deadline is enforced again
    assert await expire_overdue_requests(db_session, utcnow() + timedelta(days=2)) == 1
    assert market.provider.warnings == 2
