"""
WebShield - Plan Catalog
=========================
Static subscription plan data and the capability checks derived from it.
"""

from enum import Enum as PyEnum
from typing import Any, Dict, List, Optional


class Plan(str, PyEnum):
    BASE = "Base"
    PREMIUM = "Premium"
    PRO = "Pro"


PLANS: Dict[Plan, Dict[str, Any]] = {
    Plan.BASE: {
        "id": "base",
        "name": "Base",
        "price": 29,
        "currency": "EUR",
        "scans_per_month": 3,
        "ai_advisor": False,
        "comprehensive_reports": False,
        "recommended": False,
        "features": [
            "3 website security scans per month",
            "Basic security assessment",
            "PDF security reports",
            "NIS2 compliance assessment",
            "Email support",
        ],
    },
    Plan.PREMIUM: {
        "id": "premium",
        "name": "Premium",
        "price": 79,
        "currency": "EUR",
        "scans_per_month": 10,
        "ai_advisor": True,
        "comprehensive_reports": True,
        "recommended": True,
        "features": [
            "10 website security scans per month",
            "Advanced vulnerability detection",
            "Comprehensive PDF reports",
            "NIS2 compliance assessment",
            "AI security advisor",
            "Priority email support",
        ],
    },
    Plan.PRO: {
        "id": "pro",
        "name": "Pro",
        "price": 149,
        "currency": "EUR",
        "scans_per_month": None,  # unbounded
        "ai_advisor": True,
        "comprehensive_reports": True,
        "recommended": False,
        "features": [
            "Unlimited website security scans",
            "Advanced vulnerability detection",
            "White-labeled PDF reports",
            "NIS2 compliance assessment",
            "AI security advisor",
            "Phone and email support",
        ],
    },
}


def normalize_plan(value: Any) -> Optional[Plan]:
    """Map any casing of a plan name onto its canonical Plan, or None."""
    if isinstance(value, Plan):
        return value
    if not isinstance(value, str):
        return None
    wanted = value.strip().lower()
    for plan in Plan:
        if plan.value.lower() == wanted:
            return plan
    return None


def get_plan_info(value: Any) -> Optional[Dict[str, Any]]:
    plan = normalize_plan(value)
    return PLANS[plan] if plan else None


def scan_quota(value: Any) -> Optional[int]:
    """
    Monthly scan quota for a plan.

    Returns None for an unbounded plan and 0 for an unknown plan name.
    """
    info = get_plan_info(value)
    if info is None:
        return 0
    return info["scans_per_month"]


def has_ai_access(value: Any) -> bool:
    info = get_plan_info(value)
    return bool(info and info["ai_advisor"])


def can_generate_comprehensive(value: Any) -> bool:
    info = get_plan_info(value)
    return bool(info and info["comprehensive_reports"])


def list_plans() -> List[Dict[str, Any]]:
    """Catalog in display order."""
    return [
        {"plan": plan.value, **PLANS[plan], "features": list(PLANS[plan]["features"])}
        for plan in Plan
    ]
