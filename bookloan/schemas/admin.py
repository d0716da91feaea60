"""Pydantic schemas for backup and restore."""

from pydantic import BaseModel, Field


class BackupResponse(BaseModel):
    file: str = Field(..., description="Backup file name inside BACKUP_DIR.")
    counts: dict[str, int] = Field(..., description="Rows written per table.")


class RestoreRequest(BaseModel):
    backup_file: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Name of a file previously produced by POST /backup.",
    )


class RestoreResponse(BaseModel):
    file: str
    counts: dict[str, int] = Field(..., description="Rows restored per table.")
