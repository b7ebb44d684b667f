"""
Main FastAPI application.

Carbon accounting service: activity ingestion, emission analytics and
the carbon credit ledger.

Run with: uvicorn carbonledger.main:app --reload
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from carbonledger import __version__
from carbonledger.core.config import get_settings
from carbonledger.core.database import create_tables, dispose_engine, get_engine
from carbonledger.api.v1 import (
    analytics,
    carbon_credits,
    emissions,
    renewables,
    reports,
    scenarios,
    sites,
    value_chain,
)

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Runs on startup and shutdown.
    """
    # Startup
    configure_logging()
    settings = get_settings()
    logger.info("Starting Carbon Ledger Service")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Max bulk entries: {settings.max_bulk_entries}")

    try:
        create_tables()
        logger.info("Database tables ready")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create tables: {e}")
        raise

    yield

    # Shutdown
    logger.info("Shutting down")
    dispose_engine()


app = FastAPI(
    title="Carbon Ledger Service",
    description="Emission factor resolution, atomic record ingestion, analytics and credit ledger",
    version=__version__,
    lifespan=lifespan
)

# CORS middleware (configure as needed)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(sites.router, prefix="/api/v1")
app.include_router(emissions.router, prefix="/api/v1")
app.include_router(value_chain.router, prefix="/api/v1")
app.include_router(analytics.router, prefix="/api/v1")
app.include_router(scenarios.router, prefix="/api/v1")
app.include_router(carbon_credits.router, prefix="/api/v1")
app.include_router(renewables.router, prefix="/api/v1")
app.include_router(reports.router, prefix="/api/v1")


@app.get("/")
def root():
    """Root endpoint with service info."""
    return {
        "service": "Carbon Ledger Service",
        "version": __version__,
        "resources": [
            "sites",
            "emissions",
            "value-chain",
            "analytics",
            "scenarios",
            "carbon-credits",
            "renewables",
            "reports",
        ],
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """
    Health check endpoint.

    Returns status of the service and database connectivity.
    """
    health_status = {
        "status": "healthy",
        "service": "running",
        "database": "unknown"
    }

    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except SQLAlchemyError as e:
        health_status["status"] = "degraded"
        health_status["database"] = f"error: {e}"
        logger.warning(f"Database health check failed: {e}")

    return health_status
