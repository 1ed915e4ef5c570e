"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from closing_conditions.api.v1.router import api_router
from closing_conditions.config import settings
from closing_conditions.core.exceptions import CatalogLoadError
from closing_conditions.services.conditions_service import ConditionsService

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_conditions_service() -> ConditionsService:
    """Create the conditions service from settings, loading the catalog if configured."""
    service = ConditionsService(
        csv_path=settings.CONDITIONS_CSV_PATH,
        policy=settings.placeholder_policy,
    )
    if settings.LOAD_CATALOG_ON_STARTUP:
        try:
            service.initialize()
        except CatalogLoadError as e:
            # Start empty; evaluation answers 503 until a reload succeeds
            logger.error(f"Failed to load condition catalog at startup: {str(e)}")
    return service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if getattr(app.state, "conditions_service", None) is None:
        app.state.conditions_service = build_conditions_service()
    yield


def create_app(service: Optional[ConditionsService] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        service: Preconfigured conditions service; built from settings at
            startup when omitted
    """
    # Create FastAPI application
    app = FastAPI(
        title="Closing Conditions Engine API",
        description="API for determining which closing conditions apply to a mortgage loan",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )
    app.state.conditions_service = service

    # Configure CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API router with v1 prefix
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/")
    async def root() -> dict:
        """Root endpoint."""
        return {
            "message": "Closing Conditions Engine API",
            "version": "1.0.0",
            "docs": "/api/docs",
        }

    return app


app = create_app()
