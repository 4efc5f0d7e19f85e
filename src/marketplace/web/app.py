"""
Marketplace Web - FastAPI application.

Serves the analyst onboarding API under /api.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketplace import __version__
from marketplace.config import settings
from onboarding.api import router as onboarding_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Marketplace", version=__version__)


@app.on_event("startup")
async def startup_event():
    """Log configuration on startup."""
    logger.info("Marketplace API starting up...")
    logger.info(f"  Environment: {settings.marketplace_env}")
    logger.info(f"  Backend API: {settings.api_base_url}")
    logger.info(f"  Onboarding store: {settings.onboarding_store}")


# CORS middleware for the React frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(onboarding_router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
