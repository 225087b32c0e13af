#!/usr/bin/env python3
"""
Shoulders Dashboard backend
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shoulders_platform._version import __version__
from shoulders_platform.config import Settings
from shoulders_platform.dashboard.route_loader import load_routes
from shoulders_platform.dashboard.session import KubeSession
from shoulders_platform.models import HealthCheck

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown"""
    mode = "mock" if app.state.session.mock else "live"
    logger.info("Starting Shoulders Dashboard (%s mode)", mode)
    yield
    logger.info("Shutting down Shoulders Dashboard")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    app = FastAPI(
        title="Shoulders Dashboard",
        description="Kubernetes proxy API for the Shoulders platform dashboard",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session = KubeSession(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    load_routes(app)

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API info"""
        return {
            "name": "Shoulders Dashboard",
            "version": __version__,
            "endpoints": [
                "/health",
                "/api/contexts",
                "/api/namespaces",
                "/api/summary",
                "/api/resources/{kind}",
                "/api/resources/{kind}/defaults",
                "/api/apply",
            ],
        }

    @app.get("/health")
    async def health_check() -> HealthCheck:
        """Health check endpoint"""
        return HealthCheck(
            status="healthy",
            version=__version__,
            service="shoulders-dashboard",
            timestamp=datetime.now(UTC),
        )

    return app


def main() -> None:
    """Main entry point for the application."""
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port, log_level="info")


if __name__ == "__main__":
    main()
