"""
WebShield - Error Taxonomy Tests
=================================
"""

import pytest

from webshield.errors import (
    AuthorizationError,
    NotFoundError,
    QuotaExceededError,
    RenderError,
    UnexpectedError,
    ValidationError,
    handle_failures,
)


class TestErrors:
    def test_default_message(self):
        error = NotFoundError()
        assert error.message == "Not found"
        assert error.status_code == 404

    def test_explicit_message(self):
        assert ValidationError("Question is required").message == "Question is required"

    def test_quota_is_authorization(self):
        error = QuotaExceededError("Base")
        assert isinstance(error, AuthorizationError)
        assert error.status_code == 403
        assert "for the Base plan" in error.message


class TestHandleFailures:
    def test_client_errors_pass_through(self):
        with pytest.raises(ValidationError) as exc:
            with handle_failures("Failed to scan website"):
                raise ValidationError("URL is required")
        assert exc.value.message == "URL is required"

    def test_server_errors_get_generic_message(self):
        with pytest.raises(UnexpectedError) as exc:
            with handle_failures("Failed to generate report"):
                raise RenderError()
        assert exc.value.message == "Failed to generate report"
        assert isinstance(exc.value.__cause__, RenderError)

    def test_foreign_exceptions_are_converted(self):
        with pytest.raises(UnexpectedError) as exc:
            with handle_failures("Failed to get AI response"):
                raise KeyError("boom")
        assert exc.value.status_code == 500
        assert exc.value.message == "Failed to get AI response"
