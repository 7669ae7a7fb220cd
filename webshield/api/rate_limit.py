"""
WebShield - Rate Limiting
==========================
Shared slowapi limiter, keyed by client address.

The limiter is process-wide. Limits are read through callables so the
settings of the most recently created app apply to every request.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from webshield.config import Settings, settings as default_settings

_active: Settings = default_settings


def global_limit() -> str:
    return _active.rate_limit_global


def auth_limit() -> str:
    return _active.rate_limit_auth


def scan_limit() -> str:
    return _active.rate_limit_scans


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[global_limit],
    enabled=default_settings.rate_limit_enabled,
)


def configure_limiter(config: Settings) -> None:
    """Apply an app's rate-limit settings to the shared limiter."""
    global _active
    _active = config
    limiter.enabled = config.rate_limit_enabled
