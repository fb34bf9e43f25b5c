"""Common response schemas."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


# =============================================================================
# Error Schemas
# =============================================================================


class ErrorDetail(BaseModel):
    """Error detail structure."""

    code: str
    message: str
    details: dict[str, Any] = {}


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: ErrorDetail


# =============================================================================
# Success Schemas
# =============================================================================


class ApiResponse(BaseModel, Generic[T]):
    """Envelope used by the public JSON API."""

    success: bool
    data: T | None = None
    error: str | None = None
    metadata: dict[str, Any] | None = None


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str


# =============================================================================
# Base Response Model
# =============================================================================


class CamelModel(BaseModel):
    """Response model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
