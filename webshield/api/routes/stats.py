"""
WebShield - Dashboard Stats Routes
===================================
"""

from fastapi import APIRouter, Depends

from webshield.api.deps import Services, get_current_user, get_services
from webshield.db.records import User
from webshield.errors import handle_failures
from webshield.services.compliance import compliance_status

router = APIRouter(prefix="/stats", tags=["Stats"])


@router.get("/security")
async def security_stats(
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Score and finding counts from the latest scan."""
    with handle_failures("Failed to get security statistics", user_id=user.id):
        return await services.scans.security_stats(user)


@router.get("/compliance")
async def compliance_stats(
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Score and status label from the latest assessment."""
    with handle_failures("Failed to get compliance statistics", user_id=user.id):
        compliance = await services.storage.get_latest_compliance(user.id)

    if compliance is None:
        return {"score": 0, "status": "Not Started"}
    return {"score": compliance.score, "status": compliance_status(compliance.score)}
