"""
WebShield - Website Scanner
============================
Superficial security probe: HTTPS usage and standard response headers.

The scanner takes headers from a pluggable probe, classifies them with
a fixed rule table and scores the result deterministically.
"""

import asyncio
import hashlib
import ipaddress
import re
import socket
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx
import structlog

from webshield.errors import ScanFailedError, ValidationError

logger = structlog.get_logger(__name__)


# ===========================================
# Target validation
# ===========================================

BLOCKED_HOSTS = {
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
    "::1",
    "169.254.169.254",  # AWS metadata
    "metadata.google.internal",  # GCP metadata
    "metadata.google",
    "100.100.100.200",  # Alibaba metadata
}

PRIVATE_NETWORKS = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
]


def is_private_ip(ip_str: str) -> bool:
    """Check if an IP address is in a private range."""
    try:
        ip = ipaddress.ip_address(ip_str)
    except ValueError:
        return False
    return any(ip in network for network in PRIVATE_NETWORKS)


def normalize_target_url(url: str) -> str:
    """
    Validate a user-supplied target and return it with a scheme.

    Bare hostnames default to https. Internal hosts and literal private
    addresses are refused.
    """
    url = (url or "").strip()
    if not url:
        raise ValidationError("URL is required")

    if "://" not in url:
        url = f"https://{url}"

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ValidationError("Only HTTP and HTTPS protocols are allowed")
    if not parsed.netloc or not parsed.hostname:
        raise ValidationError("Invalid URL format")

    hostname = parsed.hostname.lower()
    if hostname in BLOCKED_HOSTS or is_private_ip(hostname):
        raise ValidationError("Scanning internal hosts is not allowed")

    return url


# ===========================================
# Probes
# ===========================================

@dataclass
class ProbeResult:
    url: str
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)


class HeaderProbe(ABC):
    """Fetches the response headers of a target."""

    name: str = "probe"

    @abstractmethod
    async def fetch(self, url: str) -> ProbeResult:
        ...


class SimulatedProbe(HeaderProbe):
    """
    Offline probe. Derives a stable header set from a hash of the URL,
    so the same URL always yields the same findings.
    """

    name = "simulated"

    async def fetch(self, url: str) -> ProbeResult:
        digest = hashlib.sha256(url.lower().encode()).digest()
        https = url.lower().startswith("https://")
        headers: Dict[str, str] = {}

        if digest[0] % 3:
            headers["content-security-policy"] = "default-src 'self'"
        if https and digest[1] % 2:
            headers["strict-transport-security"] = "max-age=31536000"
        if digest[2] % 3:
            headers["x-frame-options"] = "SAMEORIGIN"
        if digest[3] % 4:
            headers["x-content-type-options"] = "nosniff"
        if digest[4] % 2:
            headers["referrer-policy"] = "strict-origin-when-cross-origin"
        if digest[5] % 3 == 0:
            headers["permissions-policy"] = "geolocation=()"
        headers["server"] = "nginx/1.18.0" if digest[6] % 4 == 0 else "nginx"

        return ProbeResult(url=url, status_code=200, headers=headers)


class HttpProbe(HeaderProbe):
    """Live probe: one GET request following redirects."""

    name = "http"

    def __init__(self, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self._client = client

    async def _check_resolution(self, url: str) -> None:
        hostname = urlparse(url).hostname or ""
        try:
            infos = await asyncio.to_thread(socket.getaddrinfo, hostname, None)
        except socket.gaierror as e:
            raise ScanFailedError() from e

        for info in infos:
            address = info[4][0]
            if is_private_ip(address):
                logger.warning("scan_target_private", hostname=hostname, address=address)
                raise ValidationError("Scanning internal hosts is not allowed")

    async def fetch(self, url: str) -> ProbeResult:
        await self._check_resolution(url)

        try:
            if self._client is not None:
                response = await self._client.get(url)
            else:
                async with httpx.AsyncClient(
                    timeout=self.timeout,
                    follow_redirects=True,
                    headers={"User-Agent": "WebShield-Scanner/1.0"},
                ) as client:
                    response = await client.get(url)
        except httpx.HTTPError as e:
            logger.warning("scan_probe_failed", url=url, error=str(e))
            raise ScanFailedError() from e

        return ProbeResult(
            url=str(response.url),
            status_code=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
        )


# ===========================================
# Classification
# ===========================================

SEVERITY_PENALTY = {"critical": 30, "warning": 10, "info": 3}

_VERSION_PATTERN = re.compile(r"\d+(\.\d+)+")


def _issue(kind: str, title: str, description: str) -> Dict[str, str]:
    return {"type": kind, "title": title, "description": description}


def classify(https: bool, headers: Dict[str, str]) -> List[Dict[str, str]]:
    """Apply the fixed rule table to a lowercased header map."""
    issues = []
    csp = headers.get("content-security-policy", "")

    if not https:
        issues.append(_issue(
            "critical",
            "Website not served over HTTPS",
            "Traffic can be read and modified in transit. Serve the site over TLS "
            "and redirect plain HTTP requests.",
        ))
    elif "strict-transport-security" not in headers:
        issues.append(_issue(
            "warning",
            "Missing HTTP Strict Transport Security",
            "Browsers may still try plain HTTP first. Send a Strict-Transport-Security "
            "header with a long max-age.",
        ))

    if not csp:
        issues.append(_issue(
            "warning",
            "Missing Content-Security-Policy",
            "Without a CSP, injected scripts run with full page privileges.",
        ))

    if "x-frame-options" not in headers and "frame-ancestors" not in csp:
        issues.append(_issue(
            "warning",
            "Clickjacking protection missing",
            "The site can be embedded in frames on other origins. Set X-Frame-Options "
            "or a CSP frame-ancestors directive.",
        ))

    if "x-content-type-options" not in headers:
        issues.append(_issue(
            "info",
            "Missing X-Content-Type-Options",
            "Set X-Content-Type-Options: nosniff to stop MIME type sniffing.",
        ))

    if "referrer-policy" not in headers:
        issues.append(_issue(
            "info",
            "Missing Referrer-Policy",
            "Full URLs may leak to third parties through the Referer header.",
        ))

    if "permissions-policy" not in headers:
        issues.append(_issue(
            "info",
            "Missing Permissions-Policy",
            "Browser features such as camera and geolocation are not restricted.",
        ))

    banner = " ".join(headers.get(h, "") for h in ("server", "x-powered-by"))
    if _VERSION_PATTERN.search(banner):
        issues.append(_issue(
            "info",
            "Server version disclosed",
            "Response headers reveal software versions that help attackers pick exploits.",
        ))

    return issues


def score_issues(issues: List[Dict[str, str]]) -> int:
    penalty = sum(SEVERITY_PENALTY.get(i["type"], 0) for i in issues)
    return max(0, min(100, 100 - penalty))


class WebsiteScanner:
    """Runs a probe and turns its headers into scan results."""

    def __init__(self, probe: Optional[HeaderProbe] = None):
        self.probe = probe or SimulatedProbe()

    async def scan(self, url: str) -> Dict[str, Any]:
        target = normalize_target_url(url)
        probe_result = await self.probe.fetch(target)

        headers = probe_result.headers
        https = probe_result.url.lower().startswith("https://")
        issues = classify(https, headers)
        score = score_issues(issues)

        results = {
            "url": target,
            "finalUrl": probe_result.url,
            "statusCode": probe_result.status_code,
            "https": https,
            "securityHeaders": {
                "contentSecurityPolicy": "content-security-policy" in headers,
                "strictTransportSecurity": "strict-transport-security" in headers,
                "xFrameOptions": "x-frame-options" in headers,
                "xContentTypeOptions": "x-content-type-options" in headers,
                "referrerPolicy": "referrer-policy" in headers,
                "permissionsPolicy": "permissions-policy" in headers,
            },
            "issues": issues,
            "summary": {
                kind: sum(1 for i in issues if i["type"] == kind)
                for kind in ("critical", "warning", "info")
            },
            "score": score,
            "checkedAt": datetime.now(timezone.utc).isoformat(),
            "probe": self.probe.name,
        }

        logger.info(
            "website_scanned",
            url=target,
            score=score,
            issues=len(issues),
            probe=self.probe.name,
        )
        return results


def build_scanner(probe: str = "simulated", timeout: float = 10.0) -> WebsiteScanner:
    if probe == "http":
        return WebsiteScanner(HttpProbe(timeout=timeout))
    return WebsiteScanner(SimulatedProbe())
