"""
Health check.

Public (no bearer token) so load balancers and deploy checks can call it.
Also reports which schema migration the running build expects.
"""

from fastapi import APIRouter

from crm_backend import __version__
from crm_backend.config import settings
from crm_backend.db.migrations import MIGRATIONS
from crm_backend.schemas.health import HealthResponse
from crm_backend.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["system"])


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=200,
    summary="Health check",
    description="No authentication. Reports environment, API version and expected schema version.",
)
async def health_check() -> HealthResponse:
    logger.debug("Health check")
    return HealthResponse(
        status="ok",
        environment=settings.ENVIRONMENT,
        version=__version__,
        schema_version=MIGRATIONS[-1].name,
    )
