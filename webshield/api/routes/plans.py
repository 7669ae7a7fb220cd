"""
WebShield - Plan Routes
========================
Public plan catalog.
"""

from fastapi import APIRouter

from webshield.plans import list_plans

router = APIRouter(prefix="/plans", tags=["Plans"])


@router.get("")
async def get_plans():
    """List subscription plans with pricing, quotas and features."""
    return [
        {
            "id": plan["id"],
            "name": plan["name"],
            "price": plan["price"],
            "currency": plan["currency"],
            "scansPerMonth": plan["scans_per_month"],
            "aiAdvisor": plan["ai_advisor"],
            "comprehensiveReports": plan["comprehensive_reports"],
            "recommended": plan["recommended"],
            "features": plan["features"],
        }
        for plan in list_plans()
    ]
