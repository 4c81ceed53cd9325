"""FastAPI dependencies for genbatch API.

Dependency injection functions for route handlers.
"""

from fastapi import Request

from genbatch.api.services import Services
from genbatch.core.batch.coordinator import BatchCoordinator
from genbatch.core.reconciliation.engine import ReconciliationEngine
from genbatch.core.reconciliation.scanner import StuckJobScanner
from genbatch.infrastructure.database.repositories import BaseRepository


def get_services(request: Request) -> Services:
    """Get the wired services from app state.

    Note:
        Set via: app.state.services = build_services(...)
    """
    return request.app.state.services


def get_repository(request: Request) -> BaseRepository:
    return get_services(request).repository


def get_coordinator(request: Request) -> BatchCoordinator:
    return get_services(request).coordinator


def get_engine(request: Request) -> ReconciliationEngine:
    return get_services(request).engine


def get_scanner(request: Request) -> StuckJobScanner:
    return get_services(request).scanner
