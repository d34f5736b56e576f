"""Pydantic schemas for health check responses."""

from typing import Literal

from pydantic import BaseModel, Field

from outsourcing_register.schemas.database import DatabaseStats


class HealthResponse(BaseModel):
    """Response body for the health check endpoint."""

    status: Literal["ok"] = Field(default="ok", description="Service status")
    environment: str = Field(description="Current app environment (e.g. dev, prod)")
    database: Literal["connected", "disconnected", "busy"] | None = Field(
        default=None,
        description="Store status; busy while a backup or restore holds the file",
    )
    stats: DatabaseStats | None = Field(default=None, description="Store statistics when connected")
