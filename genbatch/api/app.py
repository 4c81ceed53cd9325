"""FastAPI application factory for genbatch."""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Dict, Optional

from fastapi import FastAPI

from genbatch.api.middleware import request_id_middleware
from genbatch.api.routes import batches, system, webhooks
from genbatch.api.services import build_services
from genbatch.config import config
from genbatch.core.batch.models import ProviderName, utcnow
from genbatch.core.logging import logger
from genbatch.infrastructure.database.repositories import BaseRepository
from genbatch.integrations.providers import ProviderGateway


def create_app(
    repository: Optional[BaseRepository] = None,
    gateways: Optional[Dict[ProviderName, ProviderGateway]] = None,
    start_scanner: Optional[bool] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    """Create and configure FastAPI app. Factory pattern for testability.

    Args:
        repository: Record store override (defaults to Supabase or in-process)
        gateways: Provider gateway overrides
        start_scanner: Whether to run the stuck-job scanner (defaults to SCANNER_ENABLED)
        clock: Source of "now" shared by all services
    """
    services = build_services(repository=repository, gateways=gateways, clock=clock)
    run_scanner = config.scanner_enabled() if start_scanner is None else start_scanner

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        missing = config.get_missing_config()
        if missing:
            logger.warning("config_incomplete", missing=missing)
        if run_scanner:
            services.scanner.start()
        yield
        await services.aclose()

    app = FastAPI(
        title="genbatch",
        description=(
            "Submits batches of image generation jobs to WaveSpeed or Fal and "
            "reconciles webhook and polled completions into one batch record."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware
    app.middleware("http")(request_id_middleware)

    # Register routes
    app.include_router(system.router)
    app.include_router(batches.router)
    app.include_router(webhooks.router)

    # Store services for route access
    app.state.services = services

    return app
