"""
FastAPI application entry point for the Prospect Pipeline Analytics API.

Composes the data source and orchestrator at startup, configures CORS and
registers the pipeline router.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import asyncpg
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend import __version__
from backend.api import api_router
from backend.core.config import get_settings
from backend.core.database import init_db, close_db
from backend.models import DataSourceMode
from backend.services.orchestrator import PipelineOrchestrator

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Initialize the database pool (live data source with DATABASE_URL only)
        - Compose the orchestrator and load all three channels

    On shutdown:
        - Let in-flight refreshes finish and release the data source
        - Close the database pool
    """
    settings = get_settings()
    logger.info(f"Pipeline Analytics API starting (data_source={settings.data_source.value})")

    if settings.data_source == DataSourceMode.LIVE and settings.database_url:
        try:
            await init_db()
            logger.info("Database connection pool initialized")
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Failed to initialize database: {e}")
            # Continue startup; the prospect channel keeps its zero snapshot

    orchestrator = PipelineOrchestrator.from_settings(settings)
    app.state.orchestrator = orchestrator
    await orchestrator.load_all()

    yield

    # Shutdown
    logger.info("Pipeline Analytics API shutting down")
    await orchestrator.aclose()
    app.state.orchestrator = None
    await close_db()
    logger.info("Database connection pool closed")


# Create FastAPI application
app = FastAPI(
    title="Prospect Pipeline Analytics API",
    version=__version__,
    description=(
        "Funnel analytics for the prospect pipeline: upload, research, "
        "outreach, opens and replies, with per-stage insights."
    ),
    lifespan=lifespan,
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",  # Vite dev server
        "http://localhost:5000",  # Dashboard server
        "http://127.0.0.1:5000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(api_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status 'healthy'
    """
    return {"status": "healthy"}


@app.get("/")
async def root():
    return {
        "name": "Prospect Pipeline Analytics API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
