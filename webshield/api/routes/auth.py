"""
WebShield - Auth Routes
========================
Registration, login and logout with session cookies and rate limiting.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel

from webshield.api.deps import Services, get_services, get_session_token
from webshield.api.rate_limit import auth_limit, limiter
from webshield.db.records import User
from webshield.errors import handle_failures

router = APIRouter(prefix="/auth", tags=["Auth"])

SESSION_HEADER = "X-Session-Token"


# ============== SCHEMAS ==============

class RegisterRequest(BaseModel):
    """Register request. Presence is checked by the service."""
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


# ============== ENDPOINTS ==============

@router.post("/register", response_model=User, status_code=status.HTTP_201_CREATED)
@limiter.limit(auth_limit)
async def register(
    request: Request,
    data: Optional[RegisterRequest] = None,
    services: Services = Depends(get_services),
):
    """Create an account on the Base plan."""
    data = data or RegisterRequest()
    with handle_failures("Failed to register user"):
        return await services.auth.register(
            username=data.username,
            email=data.email,
            password=data.password,
            name=data.name,
        )


@router.post("/login", response_model=User)
@limiter.limit(auth_limit)
async def login(
    request: Request,
    response: Response,
    data: Optional[LoginRequest] = None,
    services: Services = Depends(get_services),
):
    """
    Start a session.

    The token is set as an HttpOnly cookie and echoed in the
    X-Session-Token header for bearer-token clients.
    """
    data = data or LoginRequest()
    with handle_failures("Failed to login"):
        user, token = await services.auth.login(data.username, data.password)

    config = services.settings
    response.set_cookie(
        key=config.session_cookie_name,
        value=token,
        max_age=config.session_ttl_hours * 3600,
        httponly=True,
        secure=config.cookie_secure,
        samesite="lax",
    )
    response.headers[SESSION_HEADER] = token
    return user


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    services: Services = Depends(get_services),
):
    """End the current session, if any."""
    with handle_failures("Failed to logout"):
        await services.auth.logout(token)

    response.delete_cookie(services.settings.session_cookie_name)
    return {"message": "Logged out successfully"}
