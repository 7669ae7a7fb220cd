"""
WebShield - User Routes
========================
Current user profile and plan changes.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from webshield.api.deps import Services, get_current_user, get_services
from webshield.db.records import User
from webshield.errors import handle_failures

router = APIRouter(prefix="/user", tags=["User"])


class PlanChangeRequest(BaseModel):
    plan: Optional[str] = None


@router.get("", response_model=User)
async def get_me(user: User = Depends(get_current_user)):
    """Get the current user's profile."""
    return user


@router.post("/plan", response_model=User)
async def change_plan(
    data: Optional[PlanChangeRequest] = None,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Switch plan. Accepts base, premium or pro in any casing."""
    data = data or PlanChangeRequest()
    with handle_failures("Failed to update plan", user_id=user.id):
        return await services.auth.change_plan(user, data.plan)
