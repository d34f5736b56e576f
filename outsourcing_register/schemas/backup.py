"""Schemas for backup archives and restore requests."""

from pydantic import BaseModel, Field


class RestoreOptions(BaseModel):
    """Which categories to restore. Selecting all four replaces the whole store file."""

    suppliers: bool = False
    events: bool = False
    issues: bool = False
    critical_monitor: bool = False

    @property
    def all_selected(self) -> bool:
        return self.suppliers and self.events and self.issues and self.critical_monitor

    @property
    def any_selected(self) -> bool:
        return self.suppliers or self.events or self.issues or self.critical_monitor


class RestoreStats(BaseModel):
    """Rows present in each restored category afterwards (0 for categories not restored)."""

    suppliers: int = 0
    events: int = 0
    issues: int = 0
    critical_monitor: int = 0


class BackupRequest(BaseModel):
    path: str = Field(..., min_length=1, description="Absolute destination path ending with .zip")


class RestoreRequest(BaseModel):
    path: str = Field(..., min_length=1, description="Absolute path of the backup archive")
    options: RestoreOptions


class BackupResult(BaseModel):
    success: bool
    message: str
    path: str | None = None
    files: list[str] = Field(default_factory=list, description="Archive member names")


class RestoreResult(BaseModel):
    success: bool
    message: str
    stats: RestoreStats | None = None
