"""
WebShield - Monitoring Module
==============================
Prometheus metrics for the API and its services.
"""

from webshield.monitoring.metrics import (
    record_ai_request,
    record_compliance,
    record_report,
    record_request,
    record_scan,
)

__all__ = [
    "record_ai_request",
    "record_compliance",
    "record_report",
    "record_request",
    "record_scan",
]
