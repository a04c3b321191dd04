"""FastAPI application factory and server entry point"""
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi.errors import RateLimitExceeded

from sleepplanet import __version__
from sleepplanet.api import admin, auth, health
from sleepplanet.config import Settings
from sleepplanet.database import build_engine, build_session_factory, check_connection
from sleepplanet.errors import register_exception_handlers
from sleepplanet.middleware.auth import AuthGuardMiddleware
from sleepplanet.middleware.monitoring import MonitoringMiddleware
from sleepplanet.middleware.rate_limit import build_limiter
from sleepplanet.utils.jwt_utils import TokenService
from sleepplanet.utils.logger import logger, setup_logging
from sleepplanet.utils.passwords import PasswordHasher


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    settings: Settings = app.state.settings
    # Startup: refuse to serve without a reachable database
    check_connection(app.state.engine)
    logger.info("SleepPlanet admin service starting up", extra={
        "version": __version__,
        "log_level": settings.LOG_LEVEL,
        "rate_limiting": settings.RATE_LIMIT_ENABLED,
        "monitoring": settings.METRICS_ENABLED
    })
    yield
    # Shutdown
    app.state.engine.dispose()
    logger.info("SleepPlanet admin service shutting down")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around one settings value.

    Raises:
        ConfigError: the settings are unusable (e.g. empty JWT secret).
    """
    settings = settings or Settings()
    settings.check()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="SleepPlanet Admin",
        description="Administrator identity and access control",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    engine = build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.token_service = TokenService.from_settings(settings)
    app.state.password_hasher = PasswordHasher.from_settings(settings)
    app.state.started_at = time.time()

    # ===== Middleware Setup =====
    # Added last runs first: monitoring wraps the auth guard.

    app.add_middleware(AuthGuardMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.METRICS_ENABLED:
        app.add_middleware(MonitoringMiddleware)

        instrumentator = Instrumentator(
            should_group_status_codes=True,
            should_ignore_untemplated=True,
            should_respect_env_var=True,
            should_instrument_requests_inprogress=True,
            excluded_handlers=[settings.METRICS_PATH, "/health", "/health/ready", "/health/live"],
            inprogress_name="sleepplanet_requests_inprogress",
            inprogress_labels=True
        )
        instrumentator.instrument(app)
        instrumentator.expose(app, endpoint=settings.METRICS_PATH, include_in_schema=False)

    limiter = build_limiter(settings)
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        """Handle rate limit exceeded errors"""
        logger.warning(
            "Rate limit exceeded",
            extra={
                "path": request.url.path,
                "method": request.method,
            }
        )
        return JSONResponse(
            status_code=429,
            content={
                "error": "rate_limit_exceeded",
                "message": "Too many requests. Please try again later.",
            }
        )

    register_exception_handlers(app)

    # ===== Route Setup =====

    app.include_router(health.router)
    app.include_router(auth.build_login_router(limiter, settings.RATE_LIMIT_LOGIN))
    app.include_router(auth.router)
    app.include_router(admin.router)

    @app.get("/")
    def root():
        """Root endpoint"""
        return {
            "service": "sleepplanet-admin",
            "version": __version__,
            "status": "operational",
            "docs": "/docs",
            "health": "/health",
        }

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "sleepplanet.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
    )


if __name__ == "__main__":
    run()
