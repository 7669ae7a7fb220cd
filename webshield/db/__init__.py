"""
WebShield - Persistence
========================
Storage contract, records, and the memory and SQL backends.
"""

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
from webshield.db.storage import Storage, create_storage

__all__ = [
    "Compliance",
    "ComplianceAnswer",
    "NewCompliance",
    "NewReport",
    "NewScan",
    "NewUser",
    "Report",
    "Scan",
    "User",
    "Storage",
    "create_storage",
]
