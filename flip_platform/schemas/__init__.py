"""Pydantic schemas for request/response validation."""

from flip_platform.schemas.common import (
    ApiResponse,
    CamelModel,
    ErrorDetail,
    ErrorResponse,
    MessageResponse,
)
from flip_platform.schemas.data import ListingCreate, NotificationCreate, PriceRecordCreate

__all__ = [
    "ApiResponse",
    "CamelModel",
    "ErrorDetail",
    "ErrorResponse",
    "MessageResponse",
    "ListingCreate",
    "NotificationCreate",
    "PriceRecordCreate",
]
