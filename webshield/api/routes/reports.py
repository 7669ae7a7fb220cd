"""
WebShield - Report Routes
==========================
Generate, list and download PDF reports.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from pydantic import BaseModel, ConfigDict, Field

from webshield.api.deps import Services, get_current_user, get_services
from webshield.api.routes.scans import parse_id
from webshield.db.records import Report, User
from webshield.errors import handle_failures
from webshield.services.renderer import ReportOptions

router = APIRouter(prefix="/reports", tags=["Reports"])


class ReportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    report_type: Optional[str] = Field(default=None, alias="reportType")
    scan_id: Optional[int] = Field(default=None, alias="scanId")
    compliance_id: Optional[int] = Field(default=None, alias="complianceId")
    include_details: Optional[bool] = Field(default=None, alias="includeDetails")
    include_ai: Optional[bool] = Field(default=None, alias="includeAI")
    include_remediation: Optional[bool] = Field(default=None, alias="includeRemediation")

    def options(self) -> ReportOptions:
        return ReportOptions(
            include_details=self.include_details is not False,
            include_ai=self.include_ai is not False,
            include_remediation=self.include_remediation is not False,
        )


class GeneratedReport(Report):
    report_url: str


@router.post("/generate", response_model=GeneratedReport)
async def generate_report(
    data: Optional[ReportRequest] = None,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Render a security, nis2 or comprehensive report."""
    data = data or ReportRequest()
    with handle_failures("Failed to generate report", user_id=user.id):
        report, locator = await services.reports.generate(
            data.report_type,
            user,
            scan_id=data.scan_id,
            compliance_id=data.compliance_id,
            options=data.options(),
        )
    return GeneratedReport(**report.model_dump(), report_url=locator)


@router.get("", response_model=List[Report])
async def list_reports(
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """The user's reports, newest first."""
    with handle_failures("Failed to get reports", user_id=user.id):
        return await services.reports.list_reports(user)


@router.get("/{report_id}/download")
async def download_report(
    report_id: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Stream a report PDF owned by the user."""
    parsed_id = parse_id(report_id, "Invalid report ID")
    with handle_failures("Failed to download report", user_id=user.id):
        report, path = await services.reports.get_file(parsed_id, user)
    return FileResponse(path, media_type="application/pdf", filename=path.name)
