"""
WebShield - In-Memory Storage
==============================
Process-local backend for development and tests. Data is lost on restart.
"""

import asyncio
from typing import Dict, List, Optional

import structlog

from webshield.db.records import (
    Compliance,
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


class MemoryStorage(Storage):
    """Dict-backed storage with per-entity integer counters starting at 1."""

    def __init__(self, clock: Optional[Clock] = None):
        super().__init__(clock)
        self._users: Dict[int, User] = {}
        self._scans: Dict[int, Scan] = {}
        self._compliance: Dict[int, Compliance] = {}
        self._reports: Dict[int, Report] = {}
        self._ids = {"user": 1, "scan": 1, "compliance": 1, "report": 1}
        self._lock = asyncio.Lock()

    def _next_id(self, kind: str) -> int:
        value = self._ids[kind]
        self._ids[kind] = value + 1
        return value

    async def health(self) -> dict:
        return {
            "connected": True,
            "backend": "memory",
            "users": len(self._users),
            "scans": len(self._scans),
        }

    # ============== USERS ==============

    async def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        wanted = username.lower()
        for user in self._users.values():
            if user.username.lower() == wanted:
                return user
        return None

    async def create_user(self, data: NewUser) -> User:
        async with self._lock:
            if await self.get_user_by_username(data.username):
                raise ConflictError("Username already taken")

            user = User(
                id=self._next_id("user"),
                username=data.username.lower(),
                password=data.password,
                email=data.email,
                name=data.name,
                plan=data.plan,
                created_at=self.clock(),
            )
            self._users[user.id] = user

        logger.debug("user_stored", user_id=user.id, backend="memory")
        return user

    async def update_user_plan(self, user_id: int, plan: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")

        canonical = normalize_plan(plan)
        updated = user.model_copy(update={"plan": canonical.value if canonical else plan})
        self._users[user_id] = updated
        return updated

    # ============== SCANS ==============

    async def get_scan(self, scan_id: int) -> Optional[Scan]:
        return self._scans.get(scan_id)

    async def get_latest_scan(self, user_id: int) -> Optional[Scan]:
        scans = await self.get_user_scans(user_id, limit=1)
        return scans[0] if scans else None

    async def get_user_scans(self, user_id: int, limit: Optional[int] = None) -> List[Scan]:
        scans = sorted(
            (s for s in self._scans.values() if s.user_id == user_id),
            key=lambda s: (s.scan_date, s.id),
            reverse=True,
        )
        return scans[:limit] if limit is not None else scans

    async def get_user_scan_count(self, user_id: int) -> int:
        now = self.clock()
        start = month_start(now)
        return sum(
            1
            for s in self._scans.values()
            if s.user_id == user_id and start <= s.scan_date <= now
        )

    async def create_scan(self, data: NewScan) -> Scan:
        scan = Scan(
            id=self._next_id("scan"),
            user_id=data.user_id,
            url=data.url,
            score=data.score,
            scan_date=self.clock(),
            results=data.results,
            ai_advice=data.ai_advice,
            report_url=None,
        )
        self._scans[scan.id] = scan
        return scan

    async def update_scan_report(self, scan_id: int, report_url: Optional[str]) -> Scan:
        scan = self._scans.get(scan_id)
        if scan is None:
            raise NotFoundError("Scan not found")

        updated = scan.model_copy(update={"report_url": report_url})
        self._scans[scan_id] = updated
        return updated

    # ============== COMPLIANCE ==============

    async def get_compliance(self, compliance_id: int) -> Optional[Compliance]:
        return self._compliance.get(compliance_id)

    async def get_latest_compliance(self, user_id: int) -> Optional[Compliance]:
        owned = [c for c in self._compliance.values() if c.user_id == user_id]
        if not owned:
            return None
        return max(owned, key=lambda c: (c.created_at, c.id))

    async def create_compliance(self, data: NewCompliance) -> Compliance:
        compliance = Compliance(
            id=self._next_id("compliance"),
            user_id=data.user_id,
            answers=[a.model_copy() for a in data.answers],
            score=data.score,
            recommendations=data.recommendations,
            created_at=self.clock(),
        )
        self._compliance[compliance.id] = compliance
        return compliance

    # ============== REPORTS ==============

    async def get_report(self, report_id: int) -> Optional[Report]:
        return self._reports.get(report_id)

    async def get_user_reports(self, user_id: int) -> List[Report]:
        return sorted(
            (r for r in self._reports.values() if r.user_id == user_id),
            key=lambda r: (r.created_at, r.id),
            reverse=True,
        )

    async def create_report(self, data: NewReport) -> Report:
        report = Report(
            id=self._next_id("report"),
            user_id=data.user_id,
            scan_id=data.scan_id,
            compliance_id=data.compliance_id,
            report_type=data.report_type,
            file_path=data.file_path,
            created_at=self.clock(),
        )
        self._reports[report.id] = report
        return report
