"""
FastAPI application for the property comparison engine.

Production deployment configuration via environment variables.
"""

import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.comparison import (
    ComparisonEngine,
    ComparisonValidationError,
    DashboardNotFoundError,
    PropertyNotFoundError,
    SystemDashboardError,
)
from providers.factory import build_engine
from utils.config import Config
from web.comparison_routes import router as comparison_router


logger = logging.getLogger(__name__)


# =============================================================================
# Environment Configuration
# =============================================================================

IS_PRODUCTION = os.getenv("PRODUCTION", "").lower() == "true"

ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",") if os.getenv("ALLOWED_ORIGINS") else []
if not ALLOWED_ORIGINS and not IS_PRODUCTION:
    # Development fallback only
    ALLOWED_ORIGINS = ["http://localhost:8000", "http://127.0.0.1:8000"]


# =============================================================================
# Error Mapping
# =============================================================================


async def _dashboard_not_found(request: Request, exc: DashboardNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _validation_error(request: Request, exc: ComparisonValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def _system_dashboard(request: Request, exc: SystemDashboardError):
    return JSONResponse(status_code=403, content={"detail": str(exc)})


async def _property_not_found(request: Request, exc: PropertyNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


# =============================================================================
# Application
# =============================================================================


def create_app(
    engine: Optional[ComparisonEngine] = None,
    config: Optional[Config] = None,
) -> FastAPI:
    """
    Build the application around one engine instance.

    Args:
        engine: Pre-built engine (tests); otherwise built from config
        config: Configuration (default: environment)
    """
    config = config or Config.load()

    app = FastAPI(
        title="Property Comparison Engine",
        description="Subject vs comparable property analysis for appraisals",
        version="1.0.0",
        debug=config.debug and not IS_PRODUCTION,
    )
    app.state.engine = engine or build_engine(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DashboardNotFoundError, _dashboard_not_found)
    app.add_exception_handler(ComparisonValidationError, _validation_error)
    app.add_exception_handler(SystemDashboardError, _system_dashboard)
    app.add_exception_handler(PropertyNotFoundError, _property_not_found)

    app.include_router(comparison_router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "ok", "cache": app.state.engine.cache_stats()}

    return app


app = create_app()
