"""Schemas for database location settings and statistics."""

from pydantic import BaseModel, Field


class PathValidation(BaseModel):
    valid: bool
    error: str | None = None
    exists: bool = False


class DatabaseLocation(BaseModel):
    path: str
    default_path: str
    is_custom: bool


class DatabaseLocationRequest(BaseModel):
    path: str | None = Field(default=None, description="Absolute .db path, or null for the default")


class DatabaseStats(BaseModel):
    path: str
    size: int = Field(description="File size in bytes")
    total_suppliers: int
    schema_version: str | None = None
