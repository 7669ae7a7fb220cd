"""
WebShield - Report Service
===========================
Resolves report sources, checks ownership and plan, delegates rendering
and records the generated report.

Every source is resolved and checked before anything is rendered, so a
rejected request leaves no file, no Report row and no Scan update behind.
"""

from pathlib import Path
from typing import List, Optional, Tuple

import structlog

from webshield.db.records import Compliance, NewReport, Report, Scan, User
from webshield.db.storage import Storage
from webshield.errors import AuthorizationError, NotFoundError, ValidationError
from webshield.monitoring import record_report
from webshield.plans import can_generate_comprehensive
from webshield.services.compliance import ComplianceService, derive_feedback
from webshield.services.renderer import ReportOptions, ReportRenderer
from webshield.services.scans import ScanService

logger = structlog.get_logger(__name__)

REPORT_TYPES = ("security", "nis2", "comprehensive")


class ReportService:
    """PDF report generation and retrieval."""

    def __init__(
        self,
        storage: Storage,
        renderer: ReportRenderer,
        scans: ScanService,
        compliance: ComplianceService,
    ):
        self.storage = storage
        self.renderer = renderer
        self.scans = scans
        self.compliance = compliance

    async def generate(
        self,
        report_type: Optional[str],
        user: User,
        scan_id: Optional[int] = None,
        compliance_id: Optional[int] = None,
        options: Optional[ReportOptions] = None,
    ) -> Tuple[Report, str]:
        """Render a report and persist it. Returns the report and its locator."""
        options = options or ReportOptions()

        if report_type not in REPORT_TYPES:
            raise ValidationError("Valid report type is required")

        if report_type == "comprehensive" and not can_generate_comprehensive(user.plan):
            raise AuthorizationError(
                "Comprehensive reports are available only to Premium and Pro plans"
            )

        scan: Optional[Scan] = None
        if report_type in ("security", "comprehensive"):
            if scan_id is None:
                raise ValidationError("Scan ID is required for security reports")
            scan = await self.scans.get_owned(scan_id, user)

        compliance: Optional[Compliance] = None
        if report_type in ("nis2", "comprehensive"):
            compliance = await self.compliance.get_owned(compliance_id, user)

        if report_type == "security":
            locator = await self.renderer.render_security(scan, options)
        elif report_type == "nis2":
            locator = await self.renderer.render_compliance(
                compliance, derive_feedback(compliance.answers), options
            )
        else:
            locator = await self.renderer.render_security(
                scan, options, compliance, derive_feedback(compliance.answers)
            )

        # The Report row is written last; nothing after it can fail.
        try:
            if scan is not None:
                await self.storage.update_scan_report(scan.id, locator)
            report = await self.storage.create_report(
                NewReport(
                    user_id=user.id,
                    scan_id=scan.id if scan else None,
                    compliance_id=compliance.id if compliance else None,
                    report_type=report_type,
                    file_path=locator,
                )
            )
        except Exception:
            await self._undo(scan, locator)
            raise

        record_report(report_type)
        logger.info(
            "report_generated",
            report_id=report.id,
            report_type=report_type,
            user_id=user.id,
            scan_id=report.scan_id,
            compliance_id=report.compliance_id,
        )
        return report, locator

    async def _undo(self, scan: Optional[Scan], locator: str) -> None:
        """Restore the scan's previous report URL and drop the rendered file."""
        if scan is not None:
            try:
                await self.storage.update_scan_report(scan.id, scan.report_url)
            except Exception as e:
                logger.error("report_undo_failed", scan_id=scan.id, error=str(e))
        self.renderer.discard(locator)
        logger.warning("report_discarded", locator=locator)

    async def list_reports(self, user: User) -> List[Report]:
        return await self.storage.get_user_reports(user.id)

    async def get_file(self, report_id: int, user: User) -> Tuple[Report, Path]:
        report = await self.storage.get_report(report_id)
        if report is None:
            raise NotFoundError("Report not found")
        if report.user_id != user.id:
            logger.warning("report_access_denied", report_id=report_id, user_id=user.id)
            raise AuthorizationError("You don't have permission to access this report")
        return report, self.renderer.resolve(report.file_path)
