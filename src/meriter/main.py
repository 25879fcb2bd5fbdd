# src/meriter/main.py
"""Main entry point for the Meriter application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from meriter.api.v1 import (
    communities_router,
    investments_router,
    polls_router,
    publications_router,
    tappalka_router,
    votes_router,
    wallets_router,
)
from meriter.core.logging import configure_logging
from meriter.core.settings import settings

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Meriter API",
    description="Merit quota and voting permission engine",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(votes_router, prefix="/api/v1")
app.include_router(publications_router, prefix="/api/v1")
app.include_router(polls_router, prefix="/api/v1")
app.include_router(communities_router, prefix="/api/v1")
app.include_router(tappalka_router, prefix="/api/v1")
app.include_router(investments_router, prefix="/api/v1")
app.include_router(wallets_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("meriter.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
