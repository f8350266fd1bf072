"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class FlashCategory(str, Enum):
    """Flash message categories rendered by the templates."""
    SUCCESS = "success"
    ERROR = "error"


class FlashMessage(BaseModel):
    """A one-shot message stored in the session until the next page render."""
    category: FlashCategory = Field(..., description="Message category")
    message: str = Field(..., description="Message text")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
