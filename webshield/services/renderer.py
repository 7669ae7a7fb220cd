"""
WebShield - PDF Report Renderer
================================
Builds security, NIS2 and combined PDF documents with reportlab and
stores them under the configured reports directory.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional
from xml.sax.saxutils import escape

import structlog
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    HRFlowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from webshield.db.records import Compliance, Scan
from webshield.errors import NotFoundError, RenderError

logger = structlog.get_logger(__name__)

LOCATOR_PREFIX = "reports/"

SEVERITY_COLORS = {
    "critical": colors.HexColor("#fef2f2"),
    "warning": colors.HexColor("#fff7ed"),
    "info": colors.HexColor("#eff6ff"),
}

REMEDIATION = {
    "Website not served over HTTPS": "Obtain a TLS certificate and redirect all HTTP traffic to HTTPS.",
    "Missing HTTP Strict Transport Security": "Add 'Strict-Transport-Security: max-age=31536000; includeSubDomains'.",
    "Missing Content-Security-Policy": "Start with \"default-src 'self'\" and allow only required origins.",
    "Clickjacking protection missing": "Send 'X-Frame-Options: DENY' or CSP 'frame-ancestors 'none''.",
    "Missing X-Content-Type-Options": "Send 'X-Content-Type-Options: nosniff'.",
    "Missing Referrer-Policy": "Send 'Referrer-Policy: strict-origin-when-cross-origin'.",
    "Missing Permissions-Policy": "Disable unused browser features, e.g. 'camera=(), geolocation=()'.",
    "Server version disclosed": "Strip version numbers from Server and X-Powered-By headers.",
}


@dataclass(frozen=True)
class ReportOptions:
    """Optional report sections. Only an explicit False disables one."""

    include_details: bool = True
    include_ai: bool = True
    include_remediation: bool = True


class ReportRenderer(ABC):
    """Renders a document and returns an opaque locator for it."""

    @abstractmethod
    async def render_security(
        self,
        scan: Scan,
        options: ReportOptions,
        compliance: Optional[Compliance] = None,
        feedback: Optional[Dict[str, List[str]]] = None,
    ) -> str:
        ...

    @abstractmethod
    async def render_compliance(
        self,
        compliance: Compliance,
        feedback: Dict[str, List[str]],
        options: ReportOptions,
    ) -> str:
        ...

    @abstractmethod
    def resolve(self, locator: str) -> Path:
        """Filesystem path of a rendered document. Raises NotFoundError."""

    @abstractmethod
    def discard(self, locator: str) -> None:
        """Remove a rendered document. Missing documents are ignored."""


def _styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        name="ReportTitle",
        parent=styles["Title"],
        fontSize=22,
        spaceAfter=12,
        textColor=colors.HexColor("#1e40af"),
    ))
    styles.add(ParagraphStyle(
        name="ReportSubtitle",
        parent=styles["Normal"],
        fontSize=11,
        textColor=colors.HexColor("#64748b"),
        spaceAfter=18,
    ))
    styles.add(ParagraphStyle(
        name="Footer",
        parent=styles["Normal"],
        fontSize=8,
        textColor=colors.gray,
    ))
    return styles


def _header_table(rows, col_widths) -> Table:
    table = Table(rows, colWidths=col_widths)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1e293b")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#e2e8f0")),
    ]))
    return table


def _paragraphs(text: str, style) -> list:
    return [Paragraph(escape(line), style) for line in text.splitlines() if line.strip()]


def _security_section(scan: Scan, options: ReportOptions, styles) -> list:
    results = scan.results or {}
    issues = results.get("issues") or []
    story = []

    story.append(Paragraph("Security Assessment", styles["Heading2"]))
    story.append(Paragraph(f"<b>Website:</b> {escape(scan.url)}", styles["Normal"]))
    story.append(Paragraph(
        f"<b>Scanned:</b> {scan.scan_date.strftime('%Y-%m-%d %H:%M UTC')}",
        styles["Normal"],
    ))
    story.append(Paragraph(f"<b>Score:</b> {scan.score}/100", styles["Normal"]))
    story.append(Paragraph(
        f"<b>HTTPS:</b> {'yes' if results.get('https') else 'no'}",
        styles["Normal"],
    ))
    story.append(Spacer(1, 12))

    if options.include_details:
        headers = results.get("securityHeaders") or {}
        rows = [["Security header", "Present"]]
        rows.extend([name, "yes" if present else "no"] for name, present in headers.items())
        story.append(_header_table(rows, [3.5 * inch, 1.5 * inch]))
        story.append(Spacer(1, 12))

        if issues:
            rows = [["Severity", "Finding", "Description"]]
            for issue in issues:
                rows.append([
                    issue.get("type", "info").upper(),
                    Paragraph(escape(issue.get("title", "")), styles["Normal"]),
                    Paragraph(escape(issue.get("description", "")), styles["Normal"]),
                ])
            table = _header_table(rows, [0.9 * inch, 2.1 * inch, 3.5 * inch])
            for index, issue in enumerate(issues, start=1):
                shade = SEVERITY_COLORS.get(issue.get("type"))
                if shade is not None:
                    table.setStyle(TableStyle([("BACKGROUND", (0, index), (-1, index), shade)]))
            story.append(table)
        else:
            story.append(Paragraph("No issues were found.", styles["Normal"]))
        story.append(Spacer(1, 12))

    if options.include_remediation and issues:
        story.append(Paragraph("Remediation", styles["Heading3"]))
        for issue in issues:
            fix = REMEDIATION.get(issue.get("title", ""), "Review this finding with your hosting provider.")
            story.append(Paragraph(
                f"<b>{escape(issue.get('title', ''))}:</b> {escape(fix)}",
                styles["Normal"],
            ))
        story.append(Spacer(1, 12))

    if options.include_ai and scan.ai_advice:
        story.append(Paragraph("AI Security Advice", styles["Heading3"]))
        story.extend(_paragraphs(scan.ai_advice, styles["Normal"]))
        story.append(Spacer(1, 12))

    return story


def _compliance_section(
    compliance: Compliance,
    feedback: Dict[str, List[str]],
    options: ReportOptions,
    styles,
) -> list:
    story = []
    story.append(Paragraph("NIS2 Compliance Assessment", styles["Heading2"]))
    story.append(Paragraph(
        f"<b>Assessed:</b> {compliance.created_at.strftime('%Y-%m-%d %H:%M UTC')}",
        styles["Normal"],
    ))
    story.append(Paragraph(f"<b>Score:</b> {compliance.score}/100", styles["Normal"]))
    story.append(Spacer(1, 12))

    if options.include_details:
        rows = [["Question", "Answer"]]
        rows.extend([f"Q{a.question_id}", a.answer] for a in compliance.answers)
        story.append(_header_table(rows, [1.2 * inch, 4.8 * inch]))
        story.append(Spacer(1, 12))

        for title, key in (("Strengths", "strengths"), ("Areas for improvement", "improvement_areas")):
            items = feedback.get(key) or []
            if items:
                story.append(Paragraph(title, styles["Heading3"]))
                story.extend(Paragraph(f"- {escape(item)}", styles["Normal"]) for item in items)

    if options.include_remediation:
        story.append(Paragraph("Action Plan", styles["Heading3"]))
        for title, key in (
            ("Short term", "short_term_actions"),
            ("Medium term", "medium_term_actions"),
            ("Long term", "long_term_actions"),
        ):
            items = feedback.get(key) or []
            if items:
                story.append(Paragraph(f"<b>{title}</b>", styles["Normal"]))
                story.extend(Paragraph(f"- {escape(item)}", styles["Normal"]) for item in items)
        story.append(Spacer(1, 12))

    if options.include_ai and compliance.recommendations:
        story.append(Paragraph("AI Recommendations", styles["Heading3"]))
        story.extend(_paragraphs(compliance.recommendations, styles["Normal"]))

    return story


class PdfReportRenderer(ReportRenderer):
    """Writes `<type>-<uuid>.pdf` files into `reports_dir`."""

    def __init__(self, reports_dir: str):
        self.reports_dir = Path(reports_dir)

    def _build(self, kind: str, title: str, sections: list) -> str:
        self.reports_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{kind}-{uuid.uuid4().hex}.pdf"
        path = self.reports_dir / filename

        styles = _styles()
        story = [
            Paragraph(title, styles["ReportTitle"]),
            Paragraph(
                f"Generated by WebShield | {datetime.now(timezone.utc).strftime('%Y-%m-%d')}",
                styles["ReportSubtitle"],
            ),
            HRFlowable(width="100%", thickness=2, color=colors.HexColor("#1e40af")),
            Spacer(1, 16),
        ]
        for section in sections:
            story.extend(section(styles))
        story.extend([
            Spacer(1, 24),
            HRFlowable(width="100%", thickness=1, color=colors.HexColor("#e2e8f0")),
            Paragraph("WebShield | Website security and NIS2 compliance", styles["Footer"]),
        ])

        doc = SimpleDocTemplate(
            str(path),
            pagesize=A4,
            rightMargin=0.75 * inch,
            leftMargin=0.75 * inch,
            topMargin=0.75 * inch,
            bottomMargin=0.75 * inch,
            title=title,
        )
        doc.build(story)
        return LOCATOR_PREFIX + filename

    async def _render(self, kind: str, title: str, sections: list) -> str:
        try:
            locator = await asyncio.to_thread(self._build, kind, title, sections)
        except OSError as e:
            logger.error("report_render_failed", kind=kind, error=str(e))
            raise RenderError() from e

        logger.info("report_rendered", kind=kind, locator=locator)
        return locator

    async def render_security(
        self,
        scan: Scan,
        options: ReportOptions,
        compliance: Optional[Compliance] = None,
        feedback: Optional[Dict[str, List[str]]] = None,
    ) -> str:
        sections = [lambda styles: _security_section(scan, options, styles)]
        if compliance is not None:
            sections.append(
                lambda styles: _compliance_section(compliance, feedback or {}, options, styles)
            )
            return await self._render("comprehensive", "Comprehensive Security Report", sections)
        return await self._render("security", "Website Security Report", sections)

    async def render_compliance(
        self,
        compliance: Compliance,
        feedback: Dict[str, List[str]],
        options: ReportOptions,
    ) -> str:
        sections = [lambda styles: _compliance_section(compliance, feedback, options, styles)]
        return await self._render("nis2", "NIS2 Compliance Report", sections)

    def resolve(self, locator: str) -> Path:
        filename = Path(locator).name
        path = self.reports_dir / filename
        if not locator.startswith(LOCATOR_PREFIX) or not path.is_file():
            raise NotFoundError("Report file not found")
        return path

    def discard(self, locator: str) -> None:
        path = self.reports_dir / Path(locator).name
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("report_discard_failed", locator=locator, error=str(e))
