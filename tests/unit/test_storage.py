"""
WebShield - Storage Contract Tests
===================================
Every test runs against both the in-memory and the SQL backend.
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from webshield.config import Settings
from webshield.db.database import Base, build_session_factory
from webshield.db.memory import MemoryStorage
from webshield.db.records import ComplianceAnswer, NewCompliance, NewReport, NewScan, NewUser
from webshield.db.sql import SQLStorage
from webshield.db.storage import create_storage, month_start
from webshield.errors import ConflictError, NotFoundError

from conftest import make_user


@pytest_asyncio.fixture(params=["memory", "sql"])
async def backend(request, clock):
    if request.param == "memory":
        yield MemoryStorage(clock=clock)
        return

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield SQLStorage(build_session_factory(engine), engine=engine, clock=clock)

    await engine.dispose()


def new_scan(user_id: int, url: str = "https://example.com", score: int = 80) -> NewScan:
    return NewScan(user_id=user_id, url=url, score=score, results={"url": url, "issues": []})


class TestUsers:
    """Test user records."""

    @pytest.mark.asyncio
    async def test_ids_start_at_one(self, backend):
        first = await make_user(backend, "alice")
        second = await make_user(backend, "bob")
        assert (first.id, second.id) == (1, 2)

    @pytest.mark.asyncio
    async def test_username_stored_lowercase(self, backend):
        user = await make_user(backend, "Alice")
        assert user.username == "alice"

    @pytest.mark.asyncio
    async def test_lookup_is_case_insensitive(self, backend):
        user = await make_user(backend, "alice")
        found = await backend.get_user_by_username("ALICE")
        assert found is not None
        assert found.id == user.id

    @pytest.mark.asyncio
    async def test_duplicate_username_in_any_casing(self, backend):
        await make_user(backend, "alice")
        with pytest.raises(ConflictError):
            await make_user(backend, "ALICE")

    @pytest.mark.asyncio
    async def test_created_at_from_clock(self, backend, clock):
        user = await make_user(backend)
        assert user.created_at == clock()

    @pytest.mark.asyncio
    async def test_update_plan(self, backend):
        user = await make_user(backend)
        updated = await backend.update_user_plan(user.id, "pro")
        assert updated.plan == "Pro"
        assert (await backend.get_user(user.id)).plan == "Pro"

    @pytest.mark.asyncio
    async def test_update_plan_unknown_user(self, backend):
        with pytest.raises(NotFoundError):
            await backend.update_user_plan(99, "Pro")

    @pytest.mark.asyncio
    async def test_missing_user(self, backend):
        assert await backend.get_user(42) is None
        assert await backend.get_user_by_username("nobody") is None

    @pytest.mark.asyncio
    async def test_password_not_serialized(self, backend):
        user = await make_user(backend)
        assert "password" not in user.model_dump(by_alias=True)


class TestScans:
    """Test scan records and the monthly count."""

    @pytest.mark.asyncio
    async def test_newest_first(self, backend, clock):
        user = await make_user(backend)
        first = await backend.create_scan(new_scan(user.id, "https://a.example"))
        clock.advance(minutes=1)
        second = await backend.create_scan(new_scan(user.id, "https://b.example"))

        scans = await backend.get_user_scans(user.id)
        assert [s.id for s in scans] == [second.id, first.id]
        assert (await backend.get_latest_scan(user.id)).id == second.id

    @pytest.mark.asyncio
    async def test_same_instant_ordered_by_id(self, backend):
        user = await make_user(backend)
        first = await backend.create_scan(new_scan(user.id))
        second = await backend.create_scan(new_scan(user.id))

        scans = await backend.get_user_scans(user.id)
        assert [s.id for s in scans] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_limit(self, backend, clock):
        user = await make_user(backend)
        for _ in range(5):
            await backend.create_scan(new_scan(user.id))
            clock.advance(seconds=1)

        assert len(await backend.get_user_scans(user.id, limit=3)) == 3

    @pytest.mark.asyncio
    async def test_scans_isolated_per_user(self, backend):
        alice = await make_user(backend, "alice")
        bob = await make_user(backend, "bob")
        await backend.create_scan(new_scan(alice.id))

        assert await backend.get_user_scans(bob.id) == []
        assert await backend.get_latest_scan(bob.id) is None

    @pytest.mark.asyncio
    async def test_month_count_excludes_previous_month(self, backend, clock):
        user = await make_user(backend)

        clock.set(datetime(2026, 2, 27, 9, 0, tzinfo=timezone.utc))
        await backend.create_scan(new_scan(user.id))
        await backend.create_scan(new_scan(user.id))

        clock.set(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))
        await backend.create_scan(new_scan(user.id))

        assert await backend.get_user_scan_count(user.id) == 1

    @pytest.mark.asyncio
    async def test_month_count_resets(self, backend, clock):
        user = await make_user(backend)
        await backend.create_scan(new_scan(user.id))
        assert await backend.get_user_scan_count(user.id) == 1

        clock.set(datetime(2026, 4, 1, 0, 0, tzinfo=timezone.utc))
        assert await backend.get_user_scan_count(user.id) == 0

    @pytest.mark.asyncio
    async def test_results_round_trip(self, backend):
        user = await make_user(backend)
        results = {"url": "https://example.com", "issues": [{"type": "info", "title": "x"}]}
        scan = await backend.create_scan(
            NewScan(user_id=user.id, url="https://example.com", score=97, results=results)
        )

        stored = await backend.get_scan(scan.id)
        assert stored.results == results
        assert stored.report_url is None

    @pytest.mark.asyncio
    async def test_update_report_url(self, backend):
        user = await make_user(backend)
        scan = await backend.create_scan(new_scan(user.id))

        updated = await backend.update_scan_report(scan.id, "reports/security-1.pdf")
        assert updated.report_url == "reports/security-1.pdf"
        assert (await backend.get_scan(scan.id)).report_url == "reports/security-1.pdf"

    @pytest.mark.asyncio
    async def test_update_report_url_unknown_scan(self, backend):
        with pytest.raises(NotFoundError):
            await backend.update_scan_report(7, "reports/x.pdf")


class TestComplianceAndReports:
    """Test compliance and report records."""

    @pytest.mark.asyncio
    async def test_latest_compliance(self, backend, clock):
        user = await make_user(backend)
        assert await backend.get_latest_compliance(user.id) is None

        answers = [ComplianceAnswer(question_id=1, answer="No")]
        await backend.create_compliance(NewCompliance(user_id=user.id, answers=answers, score=0))
        clock.advance(hours=1)
        newer = await backend.create_compliance(
            NewCompliance(user_id=user.id, answers=answers, score=50)
        )

        latest = await backend.get_latest_compliance(user.id)
        assert latest.id == newer.id
        assert latest.answers[0].question_id == 1
        assert latest.answers[0].answer == "No"

    @pytest.mark.asyncio
    async def test_reports_newest_first(self, backend, clock):
        user = await make_user(backend)
        first = await backend.create_report(
            NewReport(user_id=user.id, report_type="nis2", file_path="reports/a.pdf")
        )
        clock.advance(minutes=1)
        second = await backend.create_report(
            NewReport(user_id=user.id, report_type="nis2", file_path="reports/b.pdf")
        )

        reports = await backend.get_user_reports(user.id)
        assert [r.id for r in reports] == [second.id, first.id]
        assert (await backend.get_report(first.id)).file_path == "reports/a.pdf"
        assert await backend.get_report(99) is None

    @pytest.mark.asyncio
    async def test_health(self, backend):
        health = await backend.health()
        assert health["connected"] is True


class TestStorageFactory:
    def test_month_start(self):
        now = datetime(2026, 3, 15, 12, 30, 5, tzinfo=timezone.utc)
        assert month_start(now) == datetime(2026, 3, 1, tzinfo=timezone.utc)

    def test_memory_backend(self):
        assert isinstance(create_storage(Settings(storage_backend="memory")), MemoryStorage)

    def test_database_backend(self):
        storage = create_storage(
            Settings(storage_backend="database", database_url="sqlite:///:memory:")
        )
        assert isinstance(storage, SQLStorage)
        assert storage.engine.dialect.name == "sqlite"
