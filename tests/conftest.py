"""
WebShield - Test Configuration
===============================
Pytest fixtures and configuration for all test types.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Dict, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["SCANNER_PROBE"] = "simulated"
os.environ["CORS_ORIGINS"] = "http://localhost:5173"

from webshield.config import Settings
from webshield.db.database import Base, build_session_factory
from webshield.db.memory import MemoryStorage
from webshield.db.records import NewUser, User
from webshield.db.sql import SQLStorage
from webshield.services.advisor import Advisor, TemplateAdvisor
from webshield.services.renderer import PdfReportRenderer
from webshield.services.scanner import HeaderProbe, ProbeResult, WebsiteScanner
from webshield.services.sessions import IdentityProvider, SessionIdentityProvider


# ===========================================
# Fakes
# ===========================================

class FixedClock:
    """Controllable clock; starts mid-month so month boundaries can be crossed."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self.now = now


class StaticProbe(HeaderProbe):
    """Returns a fixed header set for every URL."""

    name = "static"

    def __init__(self, headers: Optional[Dict[str, str]] = None):
        self.headers = headers or {}
        self.calls = []

    async def fetch(self, url: str) -> ProbeResult:
        self.calls.append(url)
        return ProbeResult(url=url, status_code=200, headers=dict(self.headers))


SECURE_HEADERS = {
    "content-security-policy": "default-src 'self'; frame-ancestors 'none'",
    "strict-transport-security": "max-age=31536000",
    "x-frame-options": "DENY",
    "x-content-type-options": "nosniff",
    "referrer-policy": "no-referrer",
    "permissions-policy": "camera=()",
    "server": "nginx",
}


class RecordingAdvisor(TemplateAdvisor):
    """Template advisor that remembers what it was asked."""

    def __init__(self):
        self.calls = []

    async def security_advice(self, scan_results):
        self.calls.append(("security", scan_results))
        return await super().security_advice(scan_results)

    async def compliance_advice(self, answers):
        self.calls.append(("compliance", answers))
        return await super().compliance_advice(answers)

    async def ask(self, question, context=None):
        self.calls.append(("ask", question))
        return await super().ask(question, context)


class FailingAdvisor(Advisor):
    async def security_advice(self, scan_results):
        raise RuntimeError("model unavailable")

    async def compliance_advice(self, answers):
        raise RuntimeError("model unavailable")

    async def ask(self, question, context=None):
        raise RuntimeError("model unavailable")


class StaticIdentityProvider(IdentityProvider):
    """Treats every request as the given user."""

    def __init__(self, user_id: int):
        self.user_id = user_id

    async def create_session(self, user_id: int) -> str:
        return f"static-{user_id}"

    async def resolve(self, token):
        return self.user_id

    async def destroy(self, token) -> None:
        return None


# ===========================================
# Core Fixtures
# ===========================================

@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        environment="test",
        storage_backend="memory",
        rate_limit_enabled=False,
        reports_dir=str(tmp_path / "reports"),
        anthropic_api_key=None,
    )


@pytest.fixture
def storage(clock) -> MemoryStorage:
    return MemoryStorage(clock=clock)


@pytest_asyncio.fixture(scope="function")
async def sql_storage(clock) -> AsyncGenerator[SQLStorage, None]:
    """SQL storage on in-memory SQLite."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    storage = SQLStorage(build_session_factory(engine), engine=engine, clock=clock)
    yield storage

    await engine.dispose()


@pytest.fixture
def advisor() -> RecordingAdvisor:
    return RecordingAdvisor()


@pytest.fixture
def probe() -> StaticProbe:
    return StaticProbe(SECURE_HEADERS)


@pytest.fixture
def scanner(probe) -> WebsiteScanner:
    return WebsiteScanner(probe)


@pytest.fixture
def renderer(tmp_path) -> PdfReportRenderer:
    return PdfReportRenderer(str(tmp_path / "reports"))


# ===========================================
# User Fixtures
# ===========================================

async def make_user(storage, username: str = "alice", plan: str = "Base") -> User:
    return await storage.create_user(
        NewUser(
            username=username,
            password="secret123",
            email=f"{username}@example.com",
            name=username.title(),
            plan=plan,
        )
    )


@pytest_asyncio.fixture
async def base_user(storage) -> User:
    return await make_user(storage, "alice", "Base")


@pytest_asyncio.fixture
async def premium_user(storage) -> User:
    return await make_user(storage, "paula", "Premium")


# ===========================================
# HTTP Client Fixtures
# ===========================================

@pytest.fixture
def app(test_settings, storage, advisor, scanner, renderer, clock):
    from webshield.api.server import create_app

    return create_app(
        settings=test_settings,
        storage=storage,
        identity=SessionIdentityProvider(clock=clock),
        advisor=advisor,
        scanner=scanner,
        renderer=renderer,
    )


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def authenticated_client(
    test_settings, storage, advisor, scanner, renderer, base_user
) -> AsyncGenerator[AsyncClient, None]:
    """Client whose every request is made as `base_user`."""
    from webshield.api.server import create_app

    app = create_app(
        settings=test_settings,
        storage=storage,
        identity=StaticIdentityProvider(base_user.id),
        advisor=advisor,
        scanner=scanner,
        renderer=renderer,
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ===========================================
# Utility Functions
# ===========================================

async def register_and_login(
    client: AsyncClient,
    username: str,
    password: str = "secret123",
    plan: Optional[str] = None,
) -> Dict[str, str]:
    """Register, log in and optionally switch plan. Returns auth headers."""
    response = await client.post(
        "/api/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": password},
    )
    assert response.status_code == 201, response.text

    response = await client.post(
        "/api/auth/login",
        json={"username": username, "password": password},
    )
    assert response.status_code == 200, response.text
    headers = {"Authorization": f"Bearer {response.headers['X-Session-Token']}"}

    if plan:
        response = await client.post("/api/user/plan", json={"plan": plan}, headers=headers)
        assert response.status_code == 200, response.text

    return headers


def make_answers(*answers: str):
    """Questionnaire payload answering questions 1..n in order."""
    return [{"questionId": i, "answer": a} for i, a in enumerate(answers, start=1)]
