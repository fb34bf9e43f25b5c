"""Health check endpoints."""

import os
import sys
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from flip_platform.core.exceptions import AppException, TransientDataError
from flip_platform.dependencies import DatabaseServiceDep, SettingsDep
from flip_platform.schemas.common import CamelModel, ErrorResponse

logger = structlog.get_logger(__name__)

router = APIRouter()


# =============================================================================
# Response Models
# =============================================================================


class DatabaseStatus(CamelModel):
    connected: bool
    price_records: int
    price_database_complete: bool
    required_records: int


class FeatureFlags(CamelModel):
    phase1_complete: bool
    deal_detection: bool
    notifications: bool
    user_management: bool


class HealthData(CamelModel):
    status: str
    timestamp: datetime
    version: str
    environment: str
    database: DatabaseStatus
    features: FeatureFlags


class HealthMetadata(CamelModel):
    phase: str
    message: str


class HealthResponse(CamelModel):
    """Readiness report for the platform."""

    success: bool
    data: HealthData
    metadata: HealthMetadata


class SimpleHealthResponse(BaseModel):
    """Simple health response for orchestrator checks."""

    status: str


class VersionResponse(BaseModel):
    """Version information response."""

    version: str
    environment: str
    python_version: str
    commit_sha: str | None = None


# =============================================================================
# Health Check Endpoints
# =============================================================================


@router.get("/health", response_model=HealthResponse, response_model_by_alias=True)
async def health_check(
    database: DatabaseServiceDep,
    settings: SettingsDep,
) -> HealthResponse | JSONResponse:
    """Report database connectivity and price database readiness.

    Responds 500 with ``database.connected = false`` if the check itself
    fails.
    """
    try:
        healthy = await database.is_healthy()
        price_records = await database.get_price_record_count() if healthy else 0
        complete = price_records >= settings.min_price_records
    except AppException as e:
        logger.error("health_check_failed", error=e.message)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Health check failed",
                "data": {
                    "status": "error",
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "database": {"connected": False},
                },
            },
        )

    return HealthResponse(
        success=healthy,
        data=HealthData(
            status="healthy" if healthy else "unhealthy",
            timestamp=datetime.now(timezone.utc),
            version=settings.app_version,
            environment=settings.environment,
            database=DatabaseStatus(
                connected=healthy,
                price_records=price_records,
                price_database_complete=complete,
                required_records=settings.min_price_records,
            ),
            features=FeatureFlags(
                phase1_complete=complete,
                deal_detection=complete,
                notifications=healthy,
                user_management=healthy,
            ),
        ),
        metadata=HealthMetadata(
            phase="Phase 2+" if complete else "Phase 0-1",
            message=(
                "All systems operational"
                if complete
                else "Price database incomplete - some features disabled"
            ),
        ),
    )


@router.get("/health/live", response_model=SimpleHealthResponse)
async def liveness_check() -> SimpleHealthResponse:
    """Liveness check. Does not touch dependencies."""
    return SimpleHealthResponse(status="alive")


@router.get(
    "/health/ready",
    response_model=SimpleHealthResponse,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse}},
)
async def readiness_check(database: DatabaseServiceDep) -> SimpleHealthResponse:
    """Readiness check. 503 until the database answers."""
    if not await database.is_healthy():
        raise TransientDataError("Not ready: database unavailable")
    return SimpleHealthResponse(status="ready")


@router.get("/version", response_model=VersionResponse)
async def version(settings: SettingsDep) -> VersionResponse:
    """Get application version information."""
    return VersionResponse(
        version=settings.app_version,
        environment=settings.environment,
        python_version=sys.version.split()[0],
        commit_sha=os.environ.get("GIT_COMMIT_SHA"),
    )
