"""
FastAPI application for the catalog facet engine.

Run with:
    uvicorn api.app:app --host 0.0.0.0 --port 8080
    uvicorn api.app:create_app --factory --reload   # local development
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import catalog, health
from config.settings import get_settings
from core.logging import configure_logging, get_logger
from core.middleware import RequestTracingMiddleware


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Nothing is warmed here: the Supabase client and the orchestrator are
    # built on the first catalog request.
    settings = get_settings()
    configure_logging(
        json_logs=settings.is_production,
        log_level="DEBUG" if settings.debug else settings.log_level,
    )
    logger.info(
        "Catalog facet API starting",
        environment=settings.environment,
        inventory_table=settings.inventory_table,
        priority_keys=settings.facet_priority_keys,
    )
    yield
    logger.info("Catalog facet API stopped")


def create_app() -> FastAPI:
    """Build the app: CORS, request tracing, health and catalog routes."""
    settings = get_settings()

    app = FastAPI(
        title="Catalog Facet API",
        description=(
            "Recovers attributes from loosely formatted item payloads, counts "
            "facet options over the in-stock catalog and filters items by mode, "
            "attribute selections and price."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url=None,
    )

    # Added last = outermost, so tracing also times CORS preflights
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTracingMiddleware, slow_request_ms=settings.slow_request_ms)

    app.include_router(health.router)
    app.include_router(catalog.router)

    return app


app = create_app()
