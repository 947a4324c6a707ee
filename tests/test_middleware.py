"""Tests for application middleware (body size limit, security headers, access log)."""

import logging

import pytest
from httpx import AsyncClient

from app.config import settings


@pytest.mark.asyncio
async def test_security_headers_present(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.headers["strict-transport-security"] == "max-age=63072000; includeSubDomains"
    assert resp.headers["x-content-type-options"] == "nosniff"
    assert resp.headers["x-frame-options"] == "DENY"
    assert resp.headers["referrer-policy"] == "strict-origin-when-cross-origin"


@pytest.mark.asyncio
async def test_body_size_limit_exceeded(client: AsyncClient) -> None:
    resp = await client.post(
        "/auth/login",
        content=b"x",
        headers={"Content-Length": str(settings.max_body_bytes + 1), "Content-Type": "application/json"},
    )
    assert resp.status_code == 413


@pytest.mark.asyncio
async def test_body_size_limit_put_checked(client: AsyncClient) -> None:
    resp = await client.put(
        "/providers/me/service-areas",
        content=b"x",
        headers={"Content-Length": "100000000", "Content-Type": "application/json"},
    )
    assert resp.status_code == 413


@pytest.mark.asyncio
async def test_body_size_limit_get_not_checked(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_security_headers_on_error_response(client: AsyncClient) -> None:
    resp = await client.get("/jobs/00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 401
    assert resp.headers["x-content-type-options"] == "nosniff"
    assert resp.headers["x-frame-options"] == "DENY"


@pytest.mark.asyncio
async def test_invalid_content_length_rejected(client: AsyncClient) -> None:
    resp = await client.post(
        "/auth/login",
        content=b"{}",
        headers={"Content-Length": "lots", "Content-Type": "application/json"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_access_log(client: AsyncClient, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="app.access"):
        await client.get("/health")
    assert any("GET /health -> 200" in record.getMessage() for record in caplog.records)
