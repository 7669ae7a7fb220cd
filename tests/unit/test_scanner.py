"""
WebShield - Scanner Tests
==========================
Target validation, header classification and scoring.
"""

import pytest

from webshield.errors import ValidationError
from webshield.services.scanner import (
    SimulatedProbe,
    WebsiteScanner,
    classify,
    is_private_ip,
    normalize_target_url,
    score_issues,
)

from conftest import SECURE_HEADERS, StaticProbe


class TestTargetValidation:
    """Test URL normalization and SSRF protection."""

    def test_bare_host_gets_https(self):
        assert normalize_target_url("example.com") == "https://example.com"

    def test_keeps_explicit_scheme(self):
        assert normalize_target_url("http://example.com/path") == "http://example.com/path"

    def test_strips_whitespace(self):
        assert normalize_target_url("  example.com  ") == "https://example.com"

    @pytest.mark.parametrize("url", ["", "   ", None])
    def test_empty_url(self, url):
        with pytest.raises(ValidationError) as exc:
            normalize_target_url(url)
        assert exc.value.message == "URL is required"

    def test_rejects_other_schemes(self):
        with pytest.raises(ValidationError) as exc:
            normalize_target_url("ftp://example.com")
        assert "HTTP" in exc.value.message

    @pytest.mark.parametrize("url", [
        "http://localhost",
        "http://127.0.0.1/admin",
        "http://169.254.169.254/latest/meta-data/",
        "https://10.0.0.5",
        "https://192.168.1.1",
        "http://metadata.google.internal",
    ])
    def test_blocks_internal_hosts(self, url):
        with pytest.raises(ValidationError) as exc:
            normalize_target_url(url)
        assert exc.value.message == "Scanning internal hosts is not allowed"

    def test_private_ip_ranges(self):
        assert is_private_ip("10.1.2.3")
        assert is_private_ip("172.16.0.1")
        assert not is_private_ip("8.8.8.8")
        assert not is_private_ip("example.com")


class TestClassification:
    """Test the header rule table."""

    def test_secure_site_has_no_issues(self):
        assert classify(True, SECURE_HEADERS) == []

    def test_plain_http_is_critical(self):
        issues = classify(False, SECURE_HEADERS)
        assert [i["type"] for i in issues] == ["critical"]
        assert issues[0]["title"] == "Website not served over HTTPS"

    def test_missing_hsts_over_https(self):
        headers = {k: v for k, v in SECURE_HEADERS.items() if k != "strict-transport-security"}
        issues = classify(True, headers)
        assert [i["title"] for i in issues] == ["Missing HTTP Strict Transport Security"]

    def test_frame_ancestors_counts_as_clickjacking_protection(self):
        headers = {k: v for k, v in SECURE_HEADERS.items() if k != "x-frame-options"}
        assert classify(True, headers) == []

    def test_version_disclosure(self):
        headers = dict(SECURE_HEADERS, server="Apache/2.4.41")
        issues = classify(True, headers)
        assert [i["title"] for i in issues] == ["Server version disclosed"]

    def test_bare_site(self):
        issues = classify(True, {})
        assert [i["type"] for i in issues] == [
            "warning", "warning", "warning", "info", "info", "info",
        ]


class TestScoring:
    def test_perfect_score(self):
        assert score_issues([]) == 100

    def test_penalties(self):
        issues = [{"type": "critical"}, {"type": "warning"}, {"type": "info"}]
        assert score_issues(issues) == 57

    def test_clamped_at_zero(self):
        assert score_issues([{"type": "critical"}] * 5) == 0


class TestWebsiteScanner:
    """Test full scan results."""

    @pytest.mark.asyncio
    async def test_scan_secure_site(self):
        probe = StaticProbe(SECURE_HEADERS)
        results = await WebsiteScanner(probe).scan("example.com")

        assert probe.calls == ["https://example.com"]
        assert results["url"] == "https://example.com"
        assert results["https"] is True
        assert results["score"] == 100
        assert results["issues"] == []
        assert all(results["securityHeaders"].values())
        assert results["summary"] == {"critical": 0, "warning": 0, "info": 0}

    @pytest.mark.asyncio
    async def test_scan_bare_http_site(self):
        results = await WebsiteScanner(StaticProbe({})).scan("http://example.com")

        assert results["https"] is False
        assert results["summary"] == {"critical": 1, "warning": 2, "info": 3}
        assert results["score"] == 100 - 30 - 20 - 9
        assert not any(results["securityHeaders"].values())

    @pytest.mark.asyncio
    async def test_invalid_target_never_probed(self):
        probe = StaticProbe({})
        with pytest.raises(ValidationError):
            await WebsiteScanner(probe).scan("http://127.0.0.1")
        assert probe.calls == []

    @pytest.mark.asyncio
    async def test_simulated_probe_is_deterministic(self):
        scanner = WebsiteScanner(SimulatedProbe())
        first = await scanner.scan("https://example.org")
        second = await scanner.scan("https://example.org")

        assert first["issues"] == second["issues"]
        assert first["score"] == second["score"]
        assert first["probe"] == "simulated"
        assert 0 <= first["score"] <= 100
