"""
SlotWise - FastAPI Main Application
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from slotwise import __version__
from slotwise.core.config import settings
from slotwise.core.logging_config import setup_logging
from slotwise.api.v1.router import api_router

# Configure logging
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info(
        "Starting %s in %s mode (business timezone %s, default grid %s min)",
        settings.app_name,
        settings.app_env,
        settings.business_timezone,
        settings.default_slot_interval_minutes,
    )

    yield

    # Shutdown
    logger.info("Shutting down %s", settings.app_name)


def create_application() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title=settings.app_name,
        description="Appointment slot availability and booking API",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )

    # Explicit origins are required when credentials are allowed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list or ["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API router
    app.include_router(api_router, prefix="/api/v1")

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        return {"status": "healthy", "app": settings.app_name}

    return app


app = create_application()
