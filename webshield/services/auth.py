"""
WebShield - Auth Service
=========================
Registration, login, logout and plan changes.

Passwords are stored and compared as given; this service does not hash.
"""

import secrets
from typing import Optional, Tuple

import structlog

from webshield.db.records import NewUser, User
from webshield.db.storage import Storage
from webshield.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from webshield.plans import Plan, normalize_plan
from webshield.services.sessions import IdentityProvider

logger = structlog.get_logger(__name__)

DEMO_USER = {
    "username": "demo",
    "password": "password",
    "email": "demo@example.com",
    "name": "Demo User",
}


def _filled(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


class AuthService:
    """Account and session management."""

    def __init__(self, storage: Storage, identity: IdentityProvider):
        self.storage = storage
        self.identity = identity

    async def register(
        self,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
        name: Optional[str] = None,
    ) -> User:
        if not (_filled(username) and _filled(email) and _filled(password)):
            raise ValidationError("Missing required fields")

        user = await self.storage.create_user(
            NewUser(
                username=username.strip(),
                email=email.strip(),
                password=password,
                name=name.strip() if _filled(name) else username.strip(),
                plan=Plan.BASE,
            )
        )
        logger.info("user_registered", user_id=user.id, username=user.username)
        return user

    async def login(self, username: Optional[str], password: Optional[str]) -> Tuple[User, str]:
        if not (_filled(username) and _filled(password)):
            raise ValidationError("Missing username or password")

        user = await self.storage.get_user_by_username(username.strip())
        if user is None or not secrets.compare_digest(
            user.password.encode(), password.encode()
        ):
            logger.warning("login_failed", username=username.strip().lower())
            raise AuthenticationError("Invalid username or password")

        token = await self.identity.create_session(user.id)
        logger.info("user_logged_in", user_id=user.id)
        return user, token

    async def logout(self, token: Optional[str]) -> None:
        await self.identity.destroy(token)

    async def current_user(self, token: Optional[str]) -> User:
        user_id = await self.identity.resolve(token)
        if user_id is None:
            raise AuthenticationError("Not authenticated")

        user = await self.storage.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def change_plan(self, user: User, plan: Optional[str]) -> User:
        canonical = normalize_plan(plan)
        if canonical is None:
            raise ValidationError("Invalid plan")

        updated = await self.storage.update_user_plan(user.id, canonical.value)
        logger.info(
            "plan_changed",
            user_id=user.id,
            old_plan=user.plan,
            new_plan=updated.plan,
        )
        return updated

    async def seed_demo_user(self) -> Optional[User]:
        """Create the demo account if it does not exist yet."""
        if await self.storage.get_user_by_username(DEMO_USER["username"]):
            return None
        try:
            user = await self.storage.create_user(NewUser(**DEMO_USER, plan=Plan.BASE))
        except ConflictError:
            return None
        logger.info("demo_user_seeded", user_id=user.id)
        return user
