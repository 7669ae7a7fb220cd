"""
WebShield - SQL Storage
========================
SQLAlchemy-backed implementation of the storage contract.
Works against PostgreSQL (asyncpg) and SQLite (aiosqlite).
"""

from datetime import datetime, timezone
from typing import List, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from webshield.db.database import (
    build_engine,
    build_session_factory,
    check_db_health,
    create_tables,
    session_scope,
)
from webshield.db.models import ComplianceRow, ReportRow, ScanRow, UserRow
from webshield.db.records import (
    Compliance,
    ComplianceAnswer,
    NewCompliance,
    NewReport,
    NewScan,
    NewUser,
    Report,
    Scan,
    User,
)
from webshield.db.storage import Clock, Storage, month_start
from webshield.errors import ConflictError, NotFoundError
from webshield.plans import normalize_plan

logger = structlog.get_logger(__name__)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _user(row: UserRow) -> User:
    return User(
        id=row.id,
        username=row.username,
        password=row.password,
        email=row.email,
        name=row.name,
        plan=row.plan,
        created_at=_aware(row.created_at),
    )


def _scan(row: ScanRow) -> Scan:
    return Scan(
        id=row.id,
        user_id=row.user_id,
        url=row.url,
        score=row.score,
        scan_date=_aware(row.scan_date),
        results=row.results or {},
        ai_advice=row.ai_advice,
        report_url=row.report_url,
    )


def _compliance(row: ComplianceRow) -> Compliance:
    return Compliance(
        id=row.id,
        user_id=row.user_id,
        answers=[ComplianceAnswer.model_validate(a) for a in row.answers or []],
        score=row.score,
        recommendations=row.recommendations,
        created_at=_aware(row.created_at),
    )


def _report(row: ReportRow) -> Report:
    return Report(
        id=row.id,
        user_id=row.user_id,
        scan_id=row.scan_id,
        compliance_id=row.compliance_id,
        report_type=row.report_type,
        file_path=row.file_path,
        created_at=_aware(row.created_at),
    )


class SQLStorage(Storage):
    """Relational storage; one short unit of work per call."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: Optional[AsyncEngine] = None,
        clock: Optional[Clock] = None,
        create_schema: bool = True,
    ):
        super().__init__(clock)
        self.session_factory = session_factory
        self.engine = engine
        self.create_schema = create_schema

    @classmethod
    def from_url(cls, url: str, echo: bool = False, clock: Optional[Clock] = None) -> "SQLStorage":
        engine = build_engine(url, echo=echo)
        return cls(build_session_factory(engine), engine=engine, clock=clock)

    # ============== LIFECYCLE ==============

    async def init(self) -> None:
        if self.engine is not None and self.create_schema:
            await create_tables(self.engine)
            logger.info("database_initialized", dialect=self.engine.dialect.name)

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("database_closed")

    async def health(self) -> dict:
        if self.engine is None:
            return {"connected": True, "backend": "database"}
        return await check_db_health(self.engine, self.session_factory)

    # ============== USERS ==============

    async def get_user(self, user_id: int) -> Optional[User]:
        async with session_scope(self.session_factory) as session:
            row = await session.get(UserRow, user_id)
            return _user(row) if row else None

    async def get_user_by_username(self, username: str) -> Optional[User]:
        async with session_scope(self.session_factory) as session:
            result = await session.execute(
                select(UserRow).where(func.lower(UserRow.username) == username.lower())
            )
            row = result.scalar_one_or_none()
            return _user(row) if row else None

    async def create_user(self, data: NewUser) -> User:
        if await self.get_user_by_username(data.username):
            raise ConflictError("Username already taken")

        row = UserRow(
            username=data.username.lower(),
            password=data.password,
            email=data.email,
            name=data.name,
            plan=data.plan,
            created_at=self.clock(),
        )
        try:
            async with session_scope(self.session_factory) as session:
                session.add(row)
                await session.flush()
                user = _user(row)
        except IntegrityError as e:
            # Lost a race against a concurrent registration
            logger.warning("username_conflict", username=data.username.lower())
            raise ConflictError("Username already taken") from e

        logger.debug("user_stored", user_id=user.id, backend="database")
        return user

    async def update_user_plan(self, user_id: int, plan: str) -> User:
        canonical = normalize_plan(plan)
        async with session_scope(self.session_factory) as session:
            row = await session.get(UserRow, user_id)
            if row is None:
                raise NotFoundError("User not found")
            row.plan = canonical.value if canonical else plan
            await session.flush()
            return _user(row)

    # ============== SCANS ==============

    async def get_scan(self, scan_id: int) -> Optional[Scan]:
        async with session_scope(self.session_factory) as session:
            row = await session.get(ScanRow, scan_id)
            return _scan(row) if row else None

    async def get_latest_scan(self, user_id: int) -> Optional[Scan]:
        scans = await self.get_user_scans(user_id, limit=1)
        return scans[0] if scans else None

    async def get_user_scans(self, user_id: int, limit: Optional[int] = None) -> List[Scan]:
        query = (
            select(ScanRow)
            .where(ScanRow.user_id == user_id)
            .order_by(ScanRow.scan_date.desc(), ScanRow.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)

        async with session_scope(self.session_factory) as session:
            result = await session.execute(query)
            return [_scan(row) for row in result.scalars().all()]

    async def get_user_scan_count(self, user_id: int) -> int:
        now = self.clock()
        async with session_scope(self.session_factory) as session:
            result = await session.execute(
                select(func.count(ScanRow.id)).where(
                    ScanRow.user_id == user_id,
                    ScanRow.scan_date >= month_start(now),
                    ScanRow.scan_date <= now,
                )
            )
            return result.scalar() or 0

    async def create_scan(self, data: NewScan) -> Scan:
        async with session_scope(self.session_factory) as session:
            row = ScanRow(
                user_id=data.user_id,
                url=data.url,
                score=data.score,
                scan_date=self.clock(),
                results=data.results,
                ai_advice=data.ai_advice,
                report_url=None,
            )
            session.add(row)
            await session.flush()
            return _scan(row)

    async def update_scan_report(self, scan_id: int, report_url: Optional[str]) -> Scan:
        async with session_scope(self.session_factory) as session:
            row = await session.get(ScanRow, scan_id)
            if row is None:
                raise NotFoundError("Scan not found")
            row.report_url = report_url
            await session.flush()
            return _scan(row)

    # ============== COMPLIANCE ==============

    async def get_compliance(self, compliance_id: int) -> Optional[Compliance]:
        async with session_scope(self.session_factory) as session:
            row = await session.get(ComplianceRow, compliance_id)
            return _compliance(row) if row else None

    async def get_latest_compliance(self, user_id: int) -> Optional[Compliance]:
        async with session_scope(self.session_factory) as session:
            result = await session.execute(
                select(ComplianceRow)
                .where(ComplianceRow.user_id == user_id)
                .order_by(ComplianceRow.created_at.desc(), ComplianceRow.id.desc())
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return _compliance(row) if row else None

    async def create_compliance(self, data: NewCompliance) -> Compliance:
        async with session_scope(self.session_factory) as session:
            row = ComplianceRow(
                user_id=data.user_id,
                answers=[a.model_dump(by_alias=True) for a in data.answers],
                score=data.score,
                recommendations=data.recommendations,
                created_at=self.clock(),
            )
            session.add(row)
            await session.flush()
            return _compliance(row)

    # ============== REPORTS ==============

    async def get_report(self, report_id: int) -> Optional[Report]:
        async with session_scope(self.session_factory) as session:
            row = await session.get(ReportRow, report_id)
            return _report(row) if row else None

    async def get_user_reports(self, user_id: int) -> List[Report]:
        async with session_scope(self.session_factory) as session:
            result = await session.execute(
                select(ReportRow)
                .where(ReportRow.user_id == user_id)
                .order_by(ReportRow.created_at.desc(), ReportRow.id.desc())
            )
            return [_report(row) for row in result.scalars().all()]

    async def create_report(self, data: NewReport) -> Report:
        async with session_scope(self.session_factory) as session:
            row = ReportRow(
                user_id=data.user_id,
                scan_id=data.scan_id,
                compliance_id=data.compliance_id,
                report_type=data.report_type,
                file_path=data.file_path,
                created_at=self.clock(),
            )
            session.add(row)
            await session.flush()
            return _report(row)
