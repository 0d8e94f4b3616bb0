"""
FastAPI Application — entry point.

An external scheduler drives imports by calling
``POST /api/v1/imports/chunks/{index}`` with 0, 1, 2, ... until a response
reports ``exhausted``; the host CMS asks for fresh totals through
``/api/v1/resources/{id}/pageviews``.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from gacounter.config import settings
from gacounter.database import init_db, close_db
from gacounter.routes import router
from gacounter.routes.auth import auth_router
from gacounter.schemas import VERSION

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hook."""
    logger.info("🚀 Starting Google Analytics Counter API v%s", VERSION)
    await init_db()
    logger.info("✅ Database ready")

    if not settings.ga_profile_id:
        logger.warning("⚠️  GA_PROFILE_ID not set — chunk imports will be rejected")

    yield

    await close_db()
    logger.info("👋 Shutdown complete")


app = FastAPI(
    title="Google Analytics Counter API",
    description=(
        "Imports per-path pageviews from Google Analytics and aggregates "
        "them onto content resources across all of their URL variants."
    ),
    version=VERSION,
    lifespan=lifespan,
)

app.include_router(router, prefix="/api/v1")
app.include_router(auth_router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": "Google Analytics Counter API",
        "version": VERSION,
        "docs": "/docs",
    }
