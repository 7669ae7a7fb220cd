"""
WebShield - Storage Contract
=============================
One persistence interface, two interchangeable backends.

The backend is chosen once at startup by `create_storage()` and handed
to the services; nothing downstream inspects which one it got.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from webshield.config import Settings
from webshield.db.records import (
    Compliance,
    NewCompliance,
    NewReport,
    NewScan,
    NewUser,
    Report,
    Scan,
    User,
    utcnow,
)

Clock = Callable[[], datetime]


def month_start(now: datetime) -> datetime:
    """First instant of the calendar month containing `now`."""
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class Storage(ABC):
    """CRUD contract shared by every persistence backend."""

    def __init__(self, clock: Optional[Clock] = None):
        self.clock: Clock = clock or utcnow

    # ============== LIFECYCLE ==============

    async def init(self) -> None:
        """Prepare the backend (create tables, open pools)."""

    async def close(self) -> None:
        """Release backend resources."""

    async def health(self) -> Dict[str, Any]:
        return {"connected": True}

    # ============== USERS ==============

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]:
        ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]:
        """Case-insensitive lookup."""

    @abstractmethod
    async def create_user(self, data: NewUser) -> User:
        """Raises ConflictError when the username is taken in any casing."""

    @abstractmethod
    async def update_user_plan(self, user_id: int, plan: str) -> User:
        """Raises NotFoundError for an unknown user."""

    # ============== SCANS ==============

    @abstractmethod
    async def get_scan(self, scan_id: int) -> Optional[Scan]:
        ...

    @abstractmethod
    async def get_latest_scan(self, user_id: int) -> Optional[Scan]:
        ...

    @abstractmethod
    async def get_user_scans(self, user_id: int, limit: Optional[int] = None) -> List[Scan]:
        """Scans newest first."""

    @abstractmethod
    async def get_user_scan_count(self, user_id: int) -> int:
        """Scans dated within the current calendar month."""

    @abstractmethod
    async def create_scan(self, data: NewScan) -> Scan:
        ...

    @abstractmethod
    async def update_scan_report(self, scan_id: int, report_url: Optional[str]) -> Scan:
        """Raises NotFoundError for an unknown scan."""

    # ============== COMPLIANCE ==============

    @abstractmethod
    async def get_compliance(self, compliance_id: int) -> Optional[Compliance]:
        ...

    @abstractmethod
    async def get_latest_compliance(self, user_id: int) -> Optional[Compliance]:
        ...

    @abstractmethod
    async def create_compliance(self, data: NewCompliance) -> Compliance:
        ...

    # ============== REPORTS ==============

    @abstractmethod
    async def get_report(self, report_id: int) -> Optional[Report]:
        ...

    @abstractmethod
    async def get_user_reports(self, user_id: int) -> List[Report]:
        """Reports newest first."""

    @abstractmethod
    async def create_report(self, data: NewReport) -> Report:
        ...


def create_storage(config: Settings, clock: Optional[Clock] = None) -> Storage:
    """Build the backend named by STORAGE_BACKEND."""
    if config.storage_backend == "database":
        from webshield.db.sql import SQLStorage

        return SQLStorage.from_url(config.database_url, echo=config.debug, clock=clock)

    from webshield.db.memory import MemoryStorage

    return MemoryStorage(clock=clock)
