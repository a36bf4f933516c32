"""Shared DTOs for the chat API."""
import math
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class BaseDTO(BaseModel):
    """Base DTO with common configuration.

    Fields are snake_case in Python and camelCase on the wire.
    """

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class PaginationMeta(BaseDTO):
    """Pagination block returned next to a page of items."""
    page: int = Field(description="Current page")
    page_size: int = Field(description="Items per page")
    total: int = Field(description="Total number of items")
    total_pages: int = Field(description="Total number of pages")

    @classmethod
    def build(cls, page: int, page_size: int, total: int) -> "PaginationMeta":
        return cls(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=math.ceil(total / page_size) if page_size else 0,
        )


class PaginatedResponse(BaseDTO, Generic[T]):
    """Response DTO for paginated results."""
    items: List[T] = Field(description="List of items")
    pagination: PaginationMeta = Field(description="Pagination details")


class SuccessResponse(BaseDTO):
    """Acknowledgement for operations without a meaningful body."""
    success: bool = Field(default=True)


class HealthCheckResponse(BaseDTO):
    """Health check response DTO."""
    status: str = Field(description="Service status")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = Field(default="0.1.0")
    dependencies: Dict[str, str] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Error body shared by every failing route."""
    error: str = Field(description="Error message")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Additional error details")
