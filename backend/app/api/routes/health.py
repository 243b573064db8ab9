"""Health & Readiness Probes — process liveness, store readiness, network visibility.

Invariants:
    - GET /health/ returns 200 whenever the process is up
    - GET /health/ready returns 503 only when the local store is unreachable
    - The remote directory never gates readiness: offline, the service still serves
      the local store, so network state is reported but not checked
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

import app.infrastructure.database as db_module
import app.services.user_repository as repository_module

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

SERVICE_NAME = "roster-api"
SERVICE_VERSION = "1.0.0"


def _network_state() -> str:
    repository = repository_module.user_repository
    return repository.network_state if repository else "unknown"


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "healthy", "service": SERVICE_NAME, "version": SERVICE_VERSION}


@router.get("/ready")
async def readiness_check():
    """Ready when the local store answers; reports connectivity alongside."""
    manager = db_module.db_manager
    store_ok = await manager.health_check() if manager else False
    checks = {
        "database": "healthy" if store_ok else "unreachable",
        "network": _network_state(),
    }
    if not store_ok:
        logger.warning("Readiness check failed: local store unreachable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}
