"""System routes for genbatch API."""

from fastapi import APIRouter, Depends

from genbatch.api.dependencies import get_services
from genbatch.api.services import Services
from genbatch.infrastructure.health import get_health_status

router = APIRouter(tags=["System"])


@router.get("/")
async def root():
    return {
        "service": "genbatch",
        "message": "Server running. See /docs",
        "start_batch": "POST /api/start-batch",
        "docs": "/docs",
    }


@router.get("/health")
async def health_check(services: Services = Depends(get_services)):
    """Health check with store and provider configuration status."""
    return await get_health_status(
        store=services.store_kind,
        scanner_running=services.scanner.running,
    )
