"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from farewatch import __app_name__, __version__
from farewatch.config import settings
from farewatch.database import check_db_connection, lifespan_db
from farewatch.monitoring.metrics import app_info

logger = logging.getLogger(__name__)


def validate_startup_config() -> None:
    """Warn about missing optional integrations."""
    warnings = []

    if not settings.amadeus_configured:
        warnings.append(
            "AMADEUS_CLIENT_ID/AMADEUS_CLIENT_SECRET not set - flight searches and "
            "route comparisons will fail"
        )
    if settings.enable_notifications and not (settings.email_configured or settings.telegram_configured):
        warnings.append("No notification channel configured - price alerts will only be logged")
    if not settings.cron_secret:
        warnings.append("CRON_SECRET not set - /api/cron/run-tasks is unauthenticated")

    if warnings:
        logger.warning("Startup configuration warnings:")
        for warning in warnings:
            logger.warning(f"  - {warning}")
    else:
        logger.info("Startup configuration validated successfully")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {__app_name__} v{__version__}")
    logger.info(f"Environment: {settings.environment}")
    validate_startup_config()
    app_info.info({"version": __version__, "environment": settings.environment})

    async with lifespan_db():
        yield

    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Flight price tracking and stopover route optimization",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled exceptions."""
    logger.error(
        f"Unhandled exception during {request.method} {request.url.path}: {exc}",
        exc_info=True,
    )

    if settings.debug:
        content = {
            "error": "Internal server error",
            "message": str(exc),
            "type": exc.__class__.__name__,
            "path": str(request.url.path),
            "method": request.method,
        }
    else:
        content = {
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please check the logs.",
        }

    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


@app.get("/health", tags=["Health"])
async def health_check() -> JSONResponse:
    """Application status and database health."""
    db_healthy = await check_db_connection()
    response = {
        "status": "healthy" if db_healthy else "unhealthy",
        "version": __version__,
        "environment": settings.environment,
        "dependencies": {
            "database": "healthy" if db_healthy else "unhealthy",
            "flight_search": "configured" if settings.amadeus_configured else "not_configured",
        },
    }
    status_code = status.HTTP_200_OK if db_healthy else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=response, status_code=status_code)


@app.get("/api", tags=["Root"])
async def api_root() -> Dict[str, Any]:
    """API root endpoint with version information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "endpoints": {
            "tasks": "/api/tasks",
            "alerts": "/api/alerts",
            "compare_routes": "/api/flights/compare-routes",
            "cron": "/api/cron/run-tasks",
            "metrics": "/metrics",
        },
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/metrics", tags=["Monitoring"], include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


from farewatch.api.routes import alerts, cron, flights, notifications, tasks

app.include_router(cron.router, prefix="/api", tags=["Cron"])
app.include_router(tasks.router, prefix="/api", tags=["Tasks"])
app.include_router(flights.router, prefix="/api", tags=["Flights"])
app.include_router(alerts.router, prefix="/api", tags=["Alerts"])
app.include_router(notifications.router, prefix="/api", tags=["Notifications"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "farewatch.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
