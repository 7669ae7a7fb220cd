"""
WebShield - Rate Limit Integration Tests
=========================================
"""

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from webshield.api.rate_limit import configure_limiter, limiter
from webshield.api.server import create_app


@pytest_asyncio.fixture
async def limited_client(test_settings, storage, advisor, scanner, renderer):
    config = test_settings.model_copy(
        update={"rate_limit_enabled": True, "rate_limit_auth": "2/minute"}
    )
    app = create_app(
        settings=config,
        storage=storage,
        advisor=advisor,
        scanner=scanner,
        renderer=renderer,
    )
    limiter.reset()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    limiter.reset()
    configure_limiter(test_settings)


class TestRateLimit:
    """Limits come from the settings passed to create_app."""

    @pytest.mark.asyncio
    async def test_auth_limit_from_app_settings(self, limited_client: AsyncClient):
        credentials = {"username": "nobody", "password": "wrong"}

        statuses = [
            (await limited_client.post("/api/auth/login", json=credentials)).status_code
            for _ in range(3)
        ]

        assert statuses == [401, 401, 429]

    @pytest.mark.asyncio
    async def test_disabled_by_app_settings(self, client: AsyncClient):
        assert limiter.enabled is False

        for _ in range(12):
            response = await client.post(
                "/api/auth/login", json={"username": "nobody", "password": "wrong"}
            )
            assert response.status_code == 401
