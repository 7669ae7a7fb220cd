"""
WebShield - Logging Configuration Tests
========================================
"""

import pytest
import structlog

from webshield.config import Settings
from webshield.logging_config import configure_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_console_renderer_in_development(self):
        configure_logging(Settings(environment="development"))

        renderer = structlog.get_config()["processors"][-1]
        assert isinstance(renderer, structlog.dev.ConsoleRenderer)

    def test_json_renderer_otherwise(self):
        configure_logging(Settings(environment="production", debug=False))

        renderer = structlog.get_config()["processors"][-1]
        assert isinstance(renderer, structlog.processors.JSONRenderer)
