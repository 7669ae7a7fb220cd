"""
WebShield - Scan Service
=========================
Quota enforcement, scanning, optional AI advice and persistence.
"""

from typing import List, Optional

import structlog

from webshield.db.records import NewScan, Scan, User
from webshield.db.storage import Storage
from webshield.errors import (
    AuthorizationError,
    NotFoundError,
    QuotaExceededError,
    WebShieldError,
)
from webshield.monitoring import record_scan
from webshield.plans import has_ai_access, scan_quota
from webshield.services.advisor import Advisor
from webshield.services.scanner import WebsiteScanner

logger = structlog.get_logger(__name__)

RECENT_SCANS_LIMIT = 3

# Fixed number of checks the dashboard reports "passed" against
TOTAL_SECURITY_CHECKS = 18


class ScanService:
    """Scan orchestration service."""

    def __init__(self, storage: Storage, scanner: WebsiteScanner, advisor: Advisor):
        self.storage = storage
        self.scanner = scanner
        self.advisor = advisor

    # ============== SCANNING ==============

    async def scan(self, url: str, user: User) -> Scan:
        """Run a scan for `user`, enforcing the monthly plan quota first."""
        quota = scan_quota(user.plan)
        if quota is not None:
            used = await self.storage.get_user_scan_count(user.id)
            if used >= quota:
                logger.info(
                    "quota_exceeded",
                    user_id=user.id,
                    plan=user.plan,
                    used=used,
                    quota=quota,
                )
                record_scan(user.plan, "quota_exceeded")
                raise QuotaExceededError(user.plan)

        try:
            results = await self.scanner.scan(url)

            ai_advice = None
            if has_ai_access(user.plan):
                ai_advice = await self.advisor.security_advice(results)

            scan = await self.storage.create_scan(
                NewScan(
                    user_id=user.id,
                    url=results["url"],
                    score=results["score"],
                    results=results,
                    ai_advice=ai_advice,
                )
            )
        except WebShieldError as e:
            if e.status_code >= 500:
                record_scan(user.plan, "failed")
            raise
        except Exception:
            record_scan(user.plan, "failed")
            raise

        record_scan(user.plan, "completed")
        logger.info(
            "scan_created",
            scan_id=scan.id,
            user_id=user.id,
            url=scan.url,
            score=scan.score,
        )
        return scan

    # ============== READS ==============

    async def list_scans(self, user: User, limit: Optional[int] = None) -> List[Scan]:
        return await self.storage.get_user_scans(user.id, limit=limit)

    async def recent_scans(self, user: User) -> List[Scan]:
        return await self.storage.get_user_scans(user.id, limit=RECENT_SCANS_LIMIT)

    async def get_owned(self, scan_id: int, user: User) -> Scan:
        scan = await self.storage.get_scan(scan_id)
        if scan is None:
            raise NotFoundError("Scan not found")
        if scan.user_id != user.id:
            logger.warning("scan_access_denied", scan_id=scan_id, user_id=user.id)
            raise AuthorizationError("You don't have permission to access this scan")
        return scan

    async def security_stats(self, user: User) -> dict:
        """Headline numbers from the user's latest scan."""
        scan = await self.storage.get_latest_scan(user.id)
        if scan is None:
            return {"score": 0, "critical": 0, "warnings": 0, "infos": 0, "passed": 0}

        issues = scan.results.get("issues") or []
        critical = sum(1 for i in issues if i.get("type") == "critical")
        warnings = sum(1 for i in issues if i.get("type") == "warning")
        infos = sum(1 for i in issues if i.get("type") == "info")

        return {
            "score": scan.score,
            "critical": critical,
            "warnings": warnings,
            "infos": infos,
            "passed": max(0, TOTAL_SECURITY_CHECKS - (critical + warnings + infos)),
        }
