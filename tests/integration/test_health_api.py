"""
WebShield - Health and Monitoring Integration Tests
====================================================
"""

import pytest
from httpx import AsyncClient, ASGITransport

from webshield.api.server import create_app
from webshield.db.memory import MemoryStorage


class BrokenStorage(MemoryStorage):
    async def health(self) -> dict:
        return {"connected": False, "error": "unreachable"}


class TestHealth:
    """Test health endpoints."""

    @pytest.mark.asyncio
    async def test_root(self, client: AsyncClient):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_deep_health(self, client: AsyncClient):
        response = await client.get("/health/deep")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["storage"]["backend"] == "memory"

    @pytest.mark.asyncio
    async def test_deep_health_degraded(self, test_settings, advisor, scanner, renderer):
        app = create_app(
            settings=test_settings,
            storage=BrokenStorage(),
            advisor=advisor,
            scanner=scanner,
            renderer=renderer,
        )
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/health/deep")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"


class TestMonitoring:
    @pytest.mark.asyncio
    async def test_metrics(self, client: AsyncClient):
        await client.get("/health")

        response = await client.get("/metrics")
        assert response.status_code == 200
        assert "webshield_http_requests_total" in response.text
        assert "webshield_scans_total" in response.text


class TestErrorHandling:
    @pytest.mark.asyncio
    async def test_unknown_route(self, client: AsyncClient):
        response = await client.get("/api/nope")
        assert response.status_code == 404
        assert "message" in response.json()

    @pytest.mark.asyncio
    async def test_malformed_body(self, client: AsyncClient):
        response = await client.post(
            "/api/auth/register",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert "message" in response.json()
