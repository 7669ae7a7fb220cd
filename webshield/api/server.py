#!/usr/bin/env python3
"""
WebShield API Server
=====================

REST API for the website security and NIS2 compliance dashboard.

Usage:
    uvicorn webshield.api.server:app --reload

Endpoints:
    GET  /                          - API status
    GET  /health                    - Basic health check
    GET  /health/deep               - Storage health check
    GET  /metrics                   - Prometheus metrics
    POST /api/auth/register         - Register
    POST /api/auth/login            - Login
    POST /api/auth/logout           - Logout
    GET  /api/user                  - Current user
    POST /api/user/plan             - Change plan
    GET  /api/plans                 - Plan catalog
    POST /api/scans                 - Scan a website
    GET  /api/scans                 - List scans
    GET  /api/scans/recent          - Three most recent scans
    GET  /api/scans/{id}            - Scan details
    POST /api/ai/security-advice    - AI advice for scan results
    POST /api/ai/compliance-advice  - AI advice for questionnaire answers
    POST /api/ai/ask                - AI question
    GET  /api/compliance/questions  - NIS2 question set
    POST /api/compliance            - Submit questionnaire
    GET  /api/compliance/latest     - Latest assessment
    POST /api/reports/generate      - Generate PDF report
    GET  /api/reports               - List reports
    GET  /api/reports/{id}/download - Download report PDF
    GET  /api/stats/security        - Security dashboard numbers
    GET  /api/stats/compliance      - Compliance dashboard numbers
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from webshield import __version__
from webshield.api.deps import build_services
from webshield.api.rate_limit import configure_limiter, limiter
from webshield.api.routes.ai import router as ai_router
from webshield.api.routes.auth import router as auth_router
from webshield.api.routes.compliance import router as compliance_router
from webshield.api.routes.plans import router as plans_router
from webshield.api.routes.reports import router as reports_router
from webshield.api.routes.scans import router as scans_router
from webshield.api.routes.stats import router as stats_router
from webshield.api.routes.user import router as user_router
from webshield.config import Settings, settings as default_settings
from webshield.db.storage import Clock, Storage, create_storage
from webshield.errors import WebShieldError
from webshield.logging_config import configure_logging
from webshield.monitoring import record_request
from webshield.services.advisor import Advisor, build_advisor
from webshield.services.renderer import PdfReportRenderer, ReportRenderer
from webshield.services.scanner import WebsiteScanner, build_scanner
from webshield.services.sessions import IdentityProvider, SessionIdentityProvider

logger = structlog.get_logger(__name__)


API_DESCRIPTION = """
# WebShield API

**Website security scanning and NIS2 compliance for small businesses**

## Authentication

Log in with `POST /api/auth/login`. The session token is returned as a
cookie and in the `X-Session-Token` header; send it back either way:

```
Authorization: Bearer <token>
```

## Plans

- **Base**: 3 scans per month, security and NIS2 reports
- **Premium**: 10 scans per month, AI advisor, comprehensive reports
- **Pro**: unlimited scans, AI advisor, comprehensive reports
"""

API_TAGS = [
    {"name": "Health", "description": "Health check and status endpoints"},
    {"name": "Auth", "description": "Registration and sessions"},
    {"name": "User", "description": "Profile and plan"},
    {"name": "Plans", "description": "Subscription plan catalog"},
    {"name": "Scans", "description": "Website security scans"},
    {"name": "AI Advisor", "description": "AI security and compliance advice"},
    {"name": "Compliance", "description": "NIS2 self-assessment"},
    {"name": "Reports", "description": "PDF reports"},
    {"name": "Stats", "description": "Dashboard numbers"},
    {"name": "Monitoring", "description": "Prometheus metrics"},
]


def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[Storage] = None,
    identity: Optional[IdentityProvider] = None,
    advisor: Optional[Advisor] = None,
    scanner: Optional[WebsiteScanner] = None,
    renderer: Optional[ReportRenderer] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """
    Build the application and its service container.

    Collaborators not passed in are built from settings; the storage
    backend is picked here, once.
    """
    config = settings or default_settings

    services = build_services(
        settings=config,
        storage=storage or create_storage(config, clock=clock),
        identity=identity or SessionIdentityProvider(
            ttl=timedelta(hours=config.session_ttl_hours), clock=clock
        ),
        advisor=advisor or build_advisor(config),
        scanner=scanner or build_scanner(config.scanner_probe, config.scanner_timeout_seconds),
        renderer=renderer or PdfReportRenderer(config.reports_dir),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan - startup and shutdown."""
        configure_logging(config)
        await services.storage.init()
        logger.info(
            "api_started",
            service=config.app_name,
            version=__version__,
            storage=config.storage_backend,
            environment=config.environment,
        )

        if config.seed_demo_user:
            if config.is_production:
                logger.warning("demo_seed_refused", reason="production")
            else:
                await services.auth.seed_demo_user()

        yield

        await services.storage.close()
        logger.info("api_stopped")

    app = FastAPI(
        title=config.app_name,
        description=API_DESCRIPTION,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=API_TAGS,
    )
    app.state.services = services
    configure_limiter(config)
    app.state.limiter = limiter

    # ============== MIDDLEWARE ==============

    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Session-Token"],
    )

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Track request metrics by route template."""
        start_time = time.perf_counter()
        response = await call_next(request)

        route = request.scope.get("route")
        endpoint = getattr(route, "path", None) or "unmatched"
        record_request(
            request.method,
            endpoint,
            response.status_code,
            time.perf_counter() - start_time,
        )
        return response

    # ============== ERROR HANDLERS ==============

    @app.exception_handler(WebShieldError)
    async def domain_error_handler(request: Request, exc: WebShieldError):
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        location = ".".join(str(part) for part in errors[0]["loc"][1:]) if errors else ""
        logger.info("request_rejected", path=request.url.path, errors=len(errors))
        message = f"Invalid request: {location}" if location else "Invalid request body"
        return _error(400, message)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        detail = getattr(exc, "detail", str(exc))
        return _error(429, f"Rate limit exceeded: {detail}")

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_error",
            error=str(exc),
            path=request.url.path,
            method=request.method,
            exc_info=True,
        )
        return _error(500, "Internal server error")

    # ============== HEALTH ==============

    @app.get("/", tags=["Health"])
    async def root():
        """API status."""
        return {
            "name": config.app_name,
            "version": __version__,
            "status": "running",
            "docs": "/docs",
        }

    @app.get("/health", tags=["Health"])
    async def health():
        """Basic health check."""
        return {"status": "healthy", "service": config.app_name, "version": __version__}

    @app.get("/health/deep", tags=["Health"])
    async def health_deep():
        """Storage health check. Returns 503 when storage is unreachable."""
        storage_health = await services.storage.health()
        healthy = storage_health.get("connected", False)
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "status": "healthy" if healthy else "degraded",
                "service": config.app_name,
                "version": __version__,
                "checks": {"storage": storage_health},
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    @app.get("/metrics", tags=["Monitoring"])
    async def metrics():
        """Prometheus metrics endpoint."""
        return PlainTextResponse(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # ============== ROUTERS ==============

    for router in (
        auth_router,
        user_router,
        plans_router,
        scans_router,
        ai_router,
        compliance_router,
        reports_router,
        stats_router,
    ):
        app.include_router(router, prefix="/api")

    return app


app = create_app()


def main():
    """Run the server."""
    import uvicorn

    uvicorn.run(
        "webshield.api.server:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
    )


if __name__ == "__main__":
    main()
