"""Health check and application wiring."""

import pytest
from httpx import AsyncClient

from app.main import app


@pytest.mark.asyncio
async def test_health_endpoint(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_all_resource_routes_mounted() -> None:
    paths = {route.path for route in app.routes}
    for path in (
        "/auth/login",
        "/jobs/{job_id}/respond",
        "/jobs/{job_id}/cancellation-quote",
        "/chats/{chat_id}/messages",
        "/notifications/read-all",
        "/disputes/{dispute_id}/resolve",
        "/lsm/providers/{provider_id}/status",
        "/admin/customers/{customer_id}/ban",
        "/uploads/images",
    ):
        assert path in paths
