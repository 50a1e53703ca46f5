"""Common Pydantic schemas shared across the API."""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field


class TimestampMixin(BaseModel):
    """Mixin for the creation timestamp."""

    created_at: datetime = Field(description="Timestamp when the resource was created")


class MessageResponse(BaseModel):
    """Response carrying only a human readable message."""

    message: str


class ErrorBody(BaseModel):
    """Body of the error envelope."""

    code: str = Field(description="Error code for programmatic handling")
    message: str = Field(description="Human readable error message")
    path: str = Field(description="Request path")
    method: str = Field(description="Request method")
    details: Optional[Any] = Field(None, description="Field errors for validation failures")
    request_id: Optional[str] = Field(None, description="Request correlation id")


class ErrorResponse(BaseModel):
    """Error response model."""

    error: ErrorBody


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input or link state"},
    401: {"model": ErrorResponse, "description": "Authentication required"},
    403: {"model": ErrorResponse, "description": "Resource belongs to another interviewer"},
    404: {"model": ErrorResponse, "description": "Resource not found"},
}
