"""
Toxicity-Service - Health API Routes

Patterns Applied:
- Health Check Pattern
- HealthService class holding readiness state
- Pydantic response models

Anti-Patterns Avoided:
- Bare except clauses
- Missing response models
"""

from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from toxicity_service.core.logging import get_logger

# Initialize router
router = APIRouter(tags=["health"])

# Get logger
logger = get_logger(__name__)


# =============================================================================
# Response Models
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    version: str
    service: str


class ReadinessResponse(BaseModel):
    """Readiness check response model.

    Returns 503 until the moderation orchestrator is built.
    """
    status: str
    checks: dict[str, bool]


# =============================================================================
# Health Service
# =============================================================================


class HealthService:
    """Service class for health check operations."""

    def __init__(self, version: str = "0.1.0"):
        """Initialize health service.

        Args:
            version: Service version string
        """
        self._version = version
        self._orchestrator_ready = False
        self._remote_tiers = 0

    def check_health(self) -> dict[str, Any]:
        """Check basic service health.

        Returns:
            Health status dictionary with status, version, service
        """
        return {
            "status": "healthy",
            "version": self._version,
            "service": "toxicity-service",
        }

    def check_readiness(self) -> tuple[dict[str, Any], bool]:
        """Check if service is ready to accept requests.

        Remote tiers are not required: the lexicon tier alone can serve.

        Returns:
            Tuple of (readiness dict, is_ready bool)
        """
        checks = {
            "orchestrator_ready": self._orchestrator_ready,
            "remote_tiers_configured": self._remote_tiers > 0,
        }

        is_ready = self._orchestrator_ready
        result: dict[str, Any] = {
            "status": "ready" if is_ready else "not_ready",
            "checks": checks,
        }

        return result, is_ready

    def set_orchestrator_ready(self, ready: bool, remote_tiers: int = 0) -> None:
        """Record orchestrator state; called by the lifespan handler.

        Args:
            ready: Whether the orchestrator is built
            remote_tiers: Number of configured remote tiers
        """
        self._orchestrator_ready = ready
        self._remote_tiers = remote_tiers


# Global health service instance
_health_service = HealthService()


def get_health_service() -> HealthService:
    """Get health service instance."""
    return _health_service


# =============================================================================
# Endpoints
# =============================================================================


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Basic health check endpoint for liveness probe",
)
async def health_check() -> HealthResponse:
    """Health check endpoint (liveness probe)."""
    service = get_health_service()
    data = service.check_health()
    logger.debug("health_check", status=data["status"])
    return HealthResponse(**data)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness Check",
    description="Readiness probe: 200 once the moderation orchestrator is built",
    responses={503: {"model": ReadinessResponse}},
)
async def readiness_check() -> JSONResponse:
    """Readiness check endpoint (readiness probe)."""
    service = get_health_service()
    data, is_ready = service.check_readiness()
    status_code = status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE
    logger.debug("readiness_check", status=data["status"])
    return JSONResponse(content=data, status_code=status_code)
