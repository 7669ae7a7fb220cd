"""
WebShield - Scan Routes
========================
Create and read website security scans.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from webshield.api.deps import Services, get_current_user, get_services
from webshield.api.rate_limit import limiter, scan_limit
from webshield.db.records import Scan, User
from webshield.errors import ValidationError, handle_failures

router = APIRouter(prefix="/scans", tags=["Scans"])


class ScanCreate(BaseModel):
    url: Optional[str] = None


def parse_id(raw: str, message: str) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(message)
    if value < 1:
        raise ValidationError(message)
    return value


@router.post("", response_model=Scan)
@limiter.limit(scan_limit)
async def create_scan(
    request: Request,
    data: Optional[ScanCreate] = None,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """
    Scan a website.

    Fails with 403 once the plan's monthly quota is used up.
    """
    data = data or ScanCreate()
    if not data.url or not data.url.strip():
        raise ValidationError("URL is required")

    with handle_failures("Failed to scan website", user_id=user.id):
        return await services.scans.scan(data.url, user)


@router.get("", response_model=List[Scan])
async def list_scans(
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """All of the user's scans, newest first."""
    with handle_failures("Failed to get scans", user_id=user.id):
        return await services.scans.list_scans(user)


@router.get("/recent", response_model=List[Scan])
async def recent_scans(
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """The user's three most recent scans."""
    with handle_failures("Failed to get recent scans", user_id=user.id):
        return await services.scans.recent_scans(user)


@router.get("/{scan_id}", response_model=Scan)
async def get_scan(
    scan_id: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Get one scan owned by the user."""
    parsed_id = parse_id(scan_id, "Invalid scan ID")
    with handle_failures("Failed to get scan", user_id=user.id):
        return await services.scans.get_owned(parsed_id, user)
