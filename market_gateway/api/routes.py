"""FastAPI application factory for the market data gateway.

Provider failures that escape a service are mapped onto HTTP here: a
throttled provider becomes 503 with Retry-After, any other provider
failure 502, and anything unexpected a bare 500. Health probes live
outside the API prefix and are never throttled.
"""

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from market_gateway import __version__
from market_gateway.api.crypto import router as crypto_router
from market_gateway.api.deps import require_gateway
from market_gateway.api.health import (
    CacheHealthChecker,
    HealthService,
    ServiceStatus,
    get_health_service,
    set_health_service,
)
from market_gateway.api.market import router as market_router
from market_gateway.api.news import router as news_router
from market_gateway.api.stocks import router as stocks_router
from market_gateway.config import Settings
from market_gateway.config import settings as default_settings
from market_gateway.data.errors import ProviderError, ProviderRateLimitError
from market_gateway.resilience.rate_limiter import RateLimiter, RateLimitExceeded
from market_gateway.services.gateway import (
    build_gateway,
    get_gateway,
    reset_gateway,
    set_gateway,
)

logger = structlog.get_logger(__name__)

UNTHROTTLED_PATHS = ("/health",)


class ErrorResponse(BaseModel):
    """Body of every error the gateway returns."""

    error: str
    detail: str | None = None
    provider: str | None = None


def _error(status_code: int, headers: dict[str, str] | None = None, **body: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(**body).model_dump(),
        headers=headers,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build a gateway unless one was registered, and tear down only what was built here."""
    built_here = get_gateway() is None
    if built_here:
        set_gateway(build_gateway(app.state.settings))
    gateway = get_gateway()

    health_service = get_health_service()
    if health_service is None:
        health_service = HealthService(version=app.version)
        set_health_service(health_service)
    health_service.register_checker(CacheHealthChecker(gateway.cache))
    if app.state.settings.CACHE_SWEEP_INTERVAL_SECONDS > 0:
        gateway.cache.start_sweeper(app.state.settings.CACHE_SWEEP_INTERVAL_SECONDS)
    logger.info("gateway_started", built_here=built_here)

    yield

    await gateway.cache.stop_sweeper()
    if built_here:
        await gateway.aclose()
        reset_gateway()
    logger.info("gateway_stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Assemble the gateway application.

    Args:
        settings: Gateway settings; the process environment when omitted.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="Market Data Gateway",
        version=__version__,
        description="Cached, rate-limited access to quote, chart, crypto and news providers.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.rate_limiter = (
        RateLimiter(settings.INBOUND_REQUESTS_PER_MINUTE)
        if settings.INBOUND_REQUESTS_PER_MINUTE > 0
        else None
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def throttle(request: Request, call_next):
        limiter: RateLimiter | None = request.app.state.rate_limiter
        if limiter is None or request.url.path.startswith(UNTHROTTLED_PATHS):
            return await call_next(request)

        client_id = request.client.host if request.client else "unknown"
        try:
            budget = await limiter.admit(client_id)
        except RateLimitExceeded as e:
            return _error(
                429,
                headers={
                    "Retry-After": str(max(1, int(e.retry_after + 0.999))),
                    "X-RateLimit-Limit": str(e.limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(e.reset_at),
                },
                error="Too many requests",
                detail=str(e),
            )

        response = await call_next(request)
        response.headers.update(budget.headers())
        return response

    @app.exception_handler(HTTPException)
    async def on_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: ARG001
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return _error(exc.status_code, headers=getattr(exc, "headers", None), error=detail)

    @app.exception_handler(ProviderRateLimitError)
    async def on_provider_throttled(request: Request, exc: ProviderRateLimitError) -> JSONResponse:
        logger.warning("provider_throttled", provider=exc.provider, path=request.url.path)
        return _error(
            503,
            headers={"Retry-After": str(max(1, int(exc.retry_after)))},
            error="Upstream provider rate limited",
            detail=exc.message,
            provider=exc.provider,
        )

    @app.exception_handler(ProviderError)
    async def on_provider_error(request: Request, exc: ProviderError) -> JSONResponse:
        logger.warning("provider_failed", path=request.url.path, **exc.to_dict())
        return _error(502, error="Upstream provider error", detail=exc.message, provider=exc.provider)

    @app.exception_handler(Exception)
    async def on_unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_exception", path=request.url.path, error=str(exc), exc_info=True)
        return _error(500, error="Internal server error", detail=str(exc) if app.debug else None)

    register_routes(app, settings.API_PREFIX)
    return app


def register_routes(app: FastAPI, prefix: str) -> None:
    """Mount the resource routers under ``prefix`` plus the health and cache endpoints."""
    prefix = prefix.rstrip("/")
    for router in (stocks_router, crypto_router, news_router, market_router):
        app.include_router(router, prefix=prefix)

    @app.get(f"{prefix}/cache/stats", tags=["Cache"])
    async def cache_stats() -> dict[str, Any]:
        return require_gateway().cache.stats()

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, Any]:
        health_service = get_health_service()
        if health_service is None:
            return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}
        return await health_service.liveness()

    @app.get("/health/ready", tags=["Health"])
    async def readiness() -> JSONResponse:
        """Ready when the cache store answers."""
        health_service = get_health_service()
        if health_service is None:
            health_service = HealthService(version=app.version)
        result = await health_service.readiness()
        status_code = 503 if result.status is ServiceStatus.NOT_READY else 200
        return JSONResponse(content=result.to_dict(), status_code=status_code)
