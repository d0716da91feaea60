"""Full-store backup to a single JSON document, and wholesale restore from one."""

import json
import logging
from datetime import UTC, date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import Date, DateTime, Table, delete, func, insert, select, text
from sqlalchemy.orm import Session

from bookloan.core.errors import ValidationFailed
from bookloan.models import Account, AuditLogEntry, InventoryItem, Loan
from bookloan.services import audit

if TYPE_CHECKING:
    from bookloan.core.config import Settings

logger = logging.getLogger(__name__)

# Insert order (parents first); restore deletes in reverse.
BACKUP_TABLES: tuple[Table, ...] = (
    Account.__table__,
    InventoryItem.__table__,
    Loan.__table__,
    AuditLogEntry.__table__,
)

BACKUP_FILE_PREFIX = "backup-"
BACKUP_FILE_SUFFIX = ".json"


def _json_default(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _coerce_row(table: Table, row: dict[str, Any]) -> dict[str, Any]:
    """Turn ISO strings back into date/datetime for the table's temporal columns."""
    out: dict[str, Any] = {}
    for column in table.columns:
        if column.name not in row:
            continue
        value = row[column.name]
        if isinstance(value, str):
            if isinstance(column.type, DateTime):
                value = datetime.fromisoformat(value)
            elif isinstance(column.type, Date):
                value = date.fromisoformat(value)
        out[column.name] = value
    return out


def dump_tables(session: Session) -> dict[str, list[dict[str, Any]]]:
    """Every row of every table, soft-deleted ones included, keyed by table name."""
    data: dict[str, list[dict[str, Any]]] = {}
    for table in BACKUP_TABLES:
        rows = session.execute(select(table).order_by(table.c.id)).mappings().all()
        data[table.name] = [dict(row) for row in rows]
    return data


def create_backup(session: Session, settings: "Settings", actor_id: int | None = None) -> tuple[Path, dict[str, int]]:
    """
    Write all tables to BACKUP_DIR/backup-<UTC timestamp>.json.

    Returns (path, rows per table). The BACKUP audit entry is written after
    the dump, so it is not part of the file it describes.
    """
    data = dump_tables(session)
    backup_dir = Path(settings.BACKUP_DIR)
    backup_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S%fZ")
    path = backup_dir / f"{BACKUP_FILE_PREFIX}{stamp}{BACKUP_FILE_SUFFIX}"
    path.write_text(json.dumps(data, indent=2, default=_json_default), encoding="utf-8")

    counts = {name: len(rows) for name, rows in data.items()}
    audit.record(session, audit.BACKUP, f"Backup written to {path.name}: {counts}", actor_id)
    session.commit()
    logger.info("Backup written: file=%s counts=%s", path, counts)
    return path, counts


def resolve_backup_file(settings: "Settings", name: str) -> Path:
    """Only plain file names inside BACKUP_DIR are accepted."""
    if not name or Path(name).name != name or not name.endswith(BACKUP_FILE_SUFFIX):
        raise ValidationFailed("Invalid backup file")
    path = Path(settings.BACKUP_DIR) / name
    if not path.is_file():
        raise ValidationFailed("Invalid backup file")
    return path


def load_backup(path: Path) -> dict[str, list[dict[str, Any]]]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationFailed(f"Backup file is not valid JSON: {e!s}") from e
    if not isinstance(data, dict):
        raise ValidationFailed("Backup file must contain a JSON object")
    for table in BACKUP_TABLES:
        rows = data.get(table.name)
        if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
            raise ValidationFailed(f"Backup file is missing table {table.name!r}")
    return data


def _reset_sequences(session: Session) -> None:
    """PostgreSQL serial counters must move past the restored ids."""
    if session.get_bind().dialect.name != "postgresql":
        return
    for table in BACKUP_TABLES:
        max_id = session.execute(select(func.max(table.c.id))).scalar()
        if max_id is None:
            continue
        session.execute(
            text("SELECT setval(pg_get_serial_sequence(:table, 'id'), :value)"),
            {"table": table.name, "value": max_id},
        )


def restore_backup(session: Session, settings: "Settings", name: str, actor_id: int | None = None) -> dict[str, int]:
    """
    Replace every table with the contents of a backup file, in one transaction.

    Any failure rolls the whole restore back; the store is never left half
    replaced. Returns rows restored per table.
    """
    path = resolve_backup_file(settings, name)
    data = load_backup(path)
    try:
        rows_by_table = {
            table.name: [_coerce_row(table, row) for row in data[table.name]]
            for table in BACKUP_TABLES
        }
    except ValueError as e:
        raise ValidationFailed(f"Backup file has an invalid date value: {e!s}") from e

    counts: dict[str, int] = {}
    try:
        for table in reversed(BACKUP_TABLES):
            session.execute(delete(table))
        for table in BACKUP_TABLES:
            rows = rows_by_table[table.name]
            if rows:
                session.execute(insert(table), rows)
            counts[table.name] = len(rows)
        _reset_sequences(session)
        # actor_id may not exist in the restored accounts, so it goes in the text only.
        audit.record(session, audit.RESTORE, f"Restore from {path.name} by account {actor_id}: {counts}")
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Restore from %s failed; rolled back", path)
        raise
    logger.info("Restore completed: file=%s counts=%s", path, counts)
    return counts
