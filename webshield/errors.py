"""
WebShield - Error Taxonomy
===========================
Domain errors raised by services and mapped onto HTTP status codes
by the API layer. Every error carries a client-safe message.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

import structlog

logger = structlog.get_logger(__name__)


class WebShieldError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(WebShieldError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(WebShieldError):
    status_code = 401
    default_message = "Not authenticated"


class AuthorizationError(WebShieldError):
    status_code = 403
    default_message = "Forbidden"


class QuotaExceededError(AuthorizationError):
    """Monthly scan quota reached for the user's plan."""

    def __init__(self, plan: str):
        self.plan = plan
        super().__init__(
            f"You've reached your monthly scan limit for the {plan} plan. "
            "Please upgrade to continue scanning."
        )


class NotFoundError(WebShieldError):
    status_code = 404
    default_message = "Not found"


class ConflictError(WebShieldError):
    status_code = 409
    default_message = "Conflict"


class UnexpectedError(WebShieldError):
    status_code = 500


class ScanFailedError(UnexpectedError):
    default_message = "Failed to scan website"


class AdvisorError(UnexpectedError):
    default_message = "AI advisor is unavailable"


class RenderError(UnexpectedError):
    default_message = "Failed to render report"


@contextmanager
def handle_failures(message: str, **context) -> Iterator[None]:
    """
    Convert anything outside the taxonomy into an UnexpectedError.

    Client errors (4xx) pass through untouched. Server-side failures and
    foreign exceptions are logged with their traceback and replaced by
    the operation's generic message.
    """
    try:
        yield
    except UnexpectedError as e:
        logger.error(
            "operation_failed",
            client_message=message,
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
            **context,
        )
        raise UnexpectedError(message) from e
    except WebShieldError:
        raise
    except Exception as e:
        logger.error(
            "unexpected_failure",
            client_message=message,
            error=str(e),
            exc_info=True,
            **context,
        )
        raise UnexpectedError(message) from e
