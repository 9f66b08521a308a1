"""
FastAPI Application Factory

Creates and configures the coffee sales API application.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import structlog

from coffee_sales.config.settings import Settings, get_settings
from coffee_sales.exceptions import (
    ConfigError,
    DataLoadError,
    DuplicateKey,
    InvariantViolation,
    NotFound,
)
from coffee_sales.serving.api.middleware import RequestLoggingMiddleware
from coffee_sales.serving.api.routes import (
    health_router,
    facts_router,
    mart_router,
    reports_router,
    analytics_router,
)
from coffee_sales.services import CoffeeSalesServices, create_services

logger = structlog.get_logger(__name__)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DuplicateKey)
    async def duplicate_key_handler(request: Request, exc: DuplicateKey):
        return JSONResponse(status_code=409, content={"detail": str(exc), "order_id": exc.order_id})

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return JSONResponse(status_code=404, content={"detail": str(exc), "order_id": exc.order_id})

    @app.exception_handler(DataLoadError)
    async def data_load_handler(request: Request, exc: DataLoadError):
        return JSONResponse(status_code=422, content={"detail": str(exc), "errors": exc.errors})

    @app.exception_handler(InvariantViolation)
    async def invariant_handler(request: Request, exc: InvariantViolation):
        logger.error("Mart invariant violated", error=str(exc))
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(request: Request, exc: ConfigError):
        return JSONResponse(status_code=500, content={"detail": str(exc)})


def create_api_app(
    settings: Optional[Settings] = None,
    services: Optional[CoffeeSalesServices] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Application settings; defaults to the cached settings
        services: Prebuilt services; created on startup when omitted and
            closed again on shutdown

    Returns:
        Configured FastAPI app instance
    """
    settings = settings or (services.settings if services else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        from coffee_sales.config.logging import configure_logging
        configure_logging(settings=settings)

        logger.info("Starting Coffee Sales Analytics API", environment=settings.app_env)

        owned = getattr(app.state, "services", None) is None
        if owned:
            app.state.services = create_services(settings)
            logger.info("Services initialized")

        yield

        logger.info("Shutting down...")
        if owned:
            app.state.services.close()
            app.state.services = None

    app = FastAPI(
        title="Coffee Sales Analytics API",
        description="Coffee sales fact store, product sales mart and reports",
        version=settings.version,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)

    _register_exception_handlers(app)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(facts_router, prefix="/api/v1/facts", tags=["Facts"])
    app.include_router(mart_router, prefix="/api/v1/mart", tags=["Mart"])
    app.include_router(reports_router, prefix="/api/v1/reports", tags=["Reports"])
    app.include_router(analytics_router, prefix="/api/v1/analytics", tags=["Analytics"])

    @app.get("/api/v1/info")
    def api_info():
        """API information endpoint."""
        return {
            "name": "Coffee Sales Analytics API",
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs",
        }

    return app
