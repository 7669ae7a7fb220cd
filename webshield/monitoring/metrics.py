"""
WebShield - Prometheus Metrics
===============================
Application metrics for monitoring and alerting.
"""

from prometheus_client import Counter, Histogram, Info

from webshield import __version__

APP_INFO = Info("webshield_app", "Application information")
APP_INFO.info({"version": __version__, "name": "WebShield"})

# HTTP metrics
REQUEST_COUNT = Counter(
    "webshield_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "webshield_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Domain metrics
SCANS_TOTAL = Counter(
    "webshield_scans_total",
    "Website scans by plan and outcome",
    ["plan", "outcome"],
)

COMPLIANCE_SUBMISSIONS = Counter(
    "webshield_compliance_submissions_total",
    "NIS2 questionnaire submissions",
    ["plan"],
)

REPORTS_TOTAL = Counter(
    "webshield_reports_total",
    "Generated PDF reports",
    ["report_type"],
)

AI_REQUESTS = Counter(
    "webshield_ai_requests_total",
    "AI advisor requests",
    ["kind"],
)


def record_request(method: str, endpoint: str, status_code: int, duration: float) -> None:
    REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
    REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)


def record_scan(plan: str, outcome: str) -> None:
    """outcome is one of: completed, quota_exceeded, failed."""
    SCANS_TOTAL.labels(plan=plan, outcome=outcome).inc()


def record_compliance(plan: str) -> None:
    COMPLIANCE_SUBMISSIONS.labels(plan=plan).inc()


def record_report(report_type: str) -> None:
    REPORTS_TOTAL.labels(report_type=report_type).inc()


def record_ai_request(kind: str) -> None:
    AI_REQUESTS.labels(kind=kind).inc()
