"""Tests for structured error responses."""
from __future__ import annotations

import pytest
from fastapi import APIRouter

from src.api.main import app


@pytest.mark.asyncio
async def test_404_returns_structured_error(client):
    resp = await client.get("/stories/nonexistent-id-12345")
    assert resp.status_code == 404
    data = resp.json()
    assert data["error"] == "Story not found"
    assert data["message"] == "Story not found"


@pytest.mark.asyncio
async def test_unknown_route_uses_same_envelope(client):
    resp = await client.get("/no/such/route")
    assert resp.status_code == 404
    assert set(resp.json()) == {"error", "message"}


@pytest.mark.asyncio
async def test_validation_error_is_keyed_by_field(client):
    resp = await client.post("/categories", json={"name": ""})
    assert resp.status_code == 422
    data = resp.json()
    assert data["message"] == "The given data was invalid."
    assert isinstance(data["errors"]["name"], list)


@pytest.mark.asyncio
async def test_malformed_json_is_422(client):
    resp = await client.post(
        "/tags", content=b"{not json", headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 422
    assert "errors" in resp.json()


@pytest.mark.asyncio
async def test_unhandled_error_hides_details():
    from httpx import ASGITransport, AsyncClient

    router = APIRouter()

    @router.get("/__boom")
    async def boom():
        raise RuntimeError("database password is hunter2")

    app.include_router(router)
    try:
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/__boom")
    finally:
        app.router.routes = [r for r in app.router.routes if getattr(r, "path", None) != "/__boom"]

    assert resp.status_code == 500
    assert resp.json()["error"] == "internal_error"
    assert "hunter2" not in resp.text


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.json()["db"] == "connected"
