"""Superadmin endpoints: full-store backup to JSON and wholesale restore."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bookloan.api.v1.auth import require_level
from bookloan.core.config import get_settings
from bookloan.core.database import get_db
from bookloan.models import Account
from bookloan.models.account import LEVEL_SUPERADMIN
from bookloan.schemas.admin import BackupResponse, RestoreRequest, RestoreResponse
from bookloan.services.backup import create_backup, restore_backup

router = APIRouter()

SuperAdmin = Annotated[Account, Depends(require_level(LEVEL_SUPERADMIN))]


@router.post("/backup", response_model=BackupResponse)
def post_backup(
    admin: SuperAdmin,
    db: Annotated[Session, Depends(get_db)],
) -> BackupResponse:
    """Dump every table into one JSON file under BACKUP_DIR."""
    path, counts = create_backup(db, get_settings(), actor_id=admin.id)
    return BackupResponse(file=path.name, counts=counts)


@router.post("/restore", response_model=RestoreResponse)
def post_restore(
    body: RestoreRequest,
    admin: SuperAdmin,
    db: Annotated[Session, Depends(get_db)],
) -> RestoreResponse:
    """
    Replace all tables with the contents of a backup file, atomically.
    backup_file is the name returned by POST /backup.
    """
    counts = restore_backup(db, get_settings(), body.backup_file, actor_id=admin.id)
    return RestoreResponse(file=body.backup_file, counts=counts)
