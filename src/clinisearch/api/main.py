"""
CliniSearch API Main Application

Entry point for the FastAPI application.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from clinisearch.platform.config import settings
from clinisearch.platform.logging import configure_logging, get_logger
from clinisearch.api.routers import patients, search
from clinisearch.api.dependencies import (
    init_resources,
    close_resources,
    get_document_store,
)
from clinisearch.storage.base import StoreError

# Configure logging on import
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting CliniSearch API...")
    try:
        await init_resources()
        logger.info("Resources initialized successfully.")
    except Exception as e:
        logger.error(f"Failed to initialize resources: {e}")
        raise

    yield

    logger.info("Shutting down CliniSearch API...")
    await close_resources()
    logger.info("Resources closed.")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Patient search, merge, pagination and cache engine",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(",") if settings.CORS_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =============================================================================
# OBSERVABILITY
# =============================================================================

metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)


# =============================================================================
# HEALTH ENDPOINTS
# =============================================================================


@app.get("/health/live", tags=["Health"])
async def liveness() -> dict:
    """Liveness probe - is the service running?"""
    return {"status": "alive"}


@app.get("/health/ready", tags=["Health"])
async def readiness() -> dict:
    """
    Readiness probe - can the document store answer queries?
    """
    store_healthy = False
    try:
        store_healthy = await get_document_store().health_check()
    except StoreError as e:
        logger.warning("document_store_unhealthy", error=str(e))

    return {
        "status": "ready" if store_healthy else "not_ready",
        "version": settings.VERSION,
        "checks": {
            "document_store": "healthy" if store_healthy else "unhealthy",
        },
    }


# =============================================================================
# API ROUTERS
# =============================================================================

app.include_router(search.router, prefix="/api/v1/search", tags=["Search"])
app.include_router(patients.router, prefix="/api/v1/patients", tags=["Patients"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "clinisearch.api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )
