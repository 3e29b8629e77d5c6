# ============================================================================
# regwatch - FastAPI Application Entry Point
# ============================================================================
"""
Main FastAPI application module for regwatch, the regulatory ingestion API.

This module sets up the FastAPI application with:
- CORS middleware (exact origins plus the preview-deployment regex)
- Startup/shutdown handlers (schema bootstrap, engine disposal)
- Error handlers for configuration errors and unexpected exceptions
- The v1 router (pollers, dispatcher, progress, health)

Usage:
    Direct: python -m regwatch.main
    Docker: uvicorn regwatch.main:app --host 0.0.0.0 --port 8000
"""

import logging
from datetime import datetime
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.v1 import api_router
from .config import settings
from .core.errors import ConfigurationError
from .core.ops.schedule_registry import discover_pollers
from .core.shared.database_service import database_service

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("regwatch.api")

# ============================================================================
# APPLICATION INITIALIZATION
# ============================================================================

app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description=(
        "regwatch - scheduled multi-source regulatory ingestion\n\n"
        "Poller workers fetch regulatory documents from federal, state and "
        "court sources; an hourly dispatcher fans out to the workers that are due."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# ============================================================================
# MIDDLEWARE CONFIGURATION
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=settings.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# ============================================================================
# APPLICATION EVENT HANDLERS
# ============================================================================


@app.on_event("startup")
async def startup_event() -> None:
    """Register pollers and bootstrap the schema when a store is configured."""
    logger.info(f"Starting regwatch {settings.api_version} (debug={settings.debug})")
    discover_pollers()

    if not database_service.is_configured:
        logger.warning("DATABASE_URL is not set; poller and progress routes will return 500")
        return

    if settings.auto_create_schema:
        await database_service.init_db()

    logger.info("Startup complete")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    logger.info("Shutting down regwatch...")
    await database_service.close()


# ============================================================================
# ERROR HANDLERS
# ============================================================================


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """
    Render missing configuration as a structured error.

    Returns 400 for missing per-source API keys and 500 for missing store or
    service credentials.
    """
    logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message, "missing": exc.missing},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected errors (details only in debug mode)."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


# ============================================================================
# ROUTER CONFIGURATION
# ============================================================================

app.include_router(api_router, prefix="/api/v1")


@app.get("/", tags=["root"])
async def root() -> Dict[str, Any]:
    """API information."""
    return {
        "name": settings.api_title,
        "version": settings.api_version,
        "status": "running",
        "docs_url": "/docs",
        "health_check": "/api/v1/health",
        "timestamp": datetime.utcnow(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("regwatch.main:app", host="0.0.0.0", port=8000)
