"""
WebShield - API Dependencies
=============================
Service container and FastAPI dependencies for session identity
and plan gating.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from webshield.config import Settings
from webshield.db.records import User
from webshield.db.storage import Storage
from webshield.errors import AuthorizationError
from webshield.plans import has_ai_access
from webshield.services.advisor import Advisor
from webshield.services.auth import AuthService
from webshield.services.compliance import ComplianceService
from webshield.services.renderer import ReportRenderer
from webshield.services.reports import ReportService
from webshield.services.scanner import WebsiteScanner
from webshield.services.scans import ScanService
from webshield.services.sessions import IdentityProvider

logger = structlog.get_logger(__name__)

# Bearer tokens are optional; the session cookie is checked as well
security = HTTPBearer(auto_error=False)


@dataclass
class Services:
    """Everything a request handler may need, built once per app."""

    settings: Settings
    storage: Storage
    identity: IdentityProvider
    advisor: Advisor
    scanner: WebsiteScanner
    renderer: ReportRenderer
    auth: AuthService
    scans: ScanService
    compliance: ComplianceService
    reports: ReportService


def build_services(
    settings: Settings,
    storage: Storage,
    identity: IdentityProvider,
    advisor: Advisor,
    scanner: WebsiteScanner,
    renderer: ReportRenderer,
) -> Services:
    scans = ScanService(storage, scanner, advisor)
    compliance = ComplianceService(storage, advisor)
    return Services(
        settings=settings,
        storage=storage,
        identity=identity,
        advisor=advisor,
        scanner=scanner,
        renderer=renderer,
        auth=AuthService(storage, identity),
        scans=scans,
        compliance=compliance,
        reports=ReportService(storage, renderer, scans, compliance),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: Services = Depends(get_services),
) -> Optional[str]:
    """Session token from the Authorization header, falling back to the cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(services.settings.session_cookie_name)


async def get_current_user(
    token: Optional[str] = Depends(get_session_token),
    services: Services = Depends(get_services),
) -> User:
    """Resolve the caller. Raises 401 without a live session."""
    return await services.auth.current_user(token)


async def require_ai_access(user: User = Depends(get_current_user)) -> User:
    if not has_ai_access(user.plan):
        logger.info("ai_access_denied", user_id=user.id, plan=user.plan)
        raise AuthorizationError("AI advisor is available only to Premium and Pro plans")
    return user
