"""Placeholder endpoints for features that are not available yet."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from flip_platform.dependencies import SettingsDep
from flip_platform.schemas.common import ApiResponse

router = APIRouter()


@router.post("/auth", status_code=status.HTTP_501_NOT_IMPLEMENTED)
async def api_auth() -> JSONResponse:
    body = ApiResponse[None](success=False, error="Authentication not yet implemented")
    return JSONResponse(
        status_code=status.HTTP_501_NOT_IMPLEMENTED,
        content=body.model_dump(exclude_none=True),
    )


@router.get("/prices", status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
async def list_prices(settings: SettingsDep) -> JSONResponse:
    body = ApiResponse[None](
        success=False,
        error="Price database not yet complete",
        metadata={
            "required_records": settings.min_price_records,
            "current_records": 0,
        },
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body.model_dump(exclude_none=True),
    )
