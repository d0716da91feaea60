"""Append-only audit trail of notable account and loan actions."""

import logging

from sqlalchemy.orm import Session

from bookloan.models import AuditLogEntry

logger = logging.getLogger(__name__)

ACCOUNT_REGISTERED = "ACCOUNT_REGISTERED"
ACCOUNT_ACTIVATED = "ACCOUNT_ACTIVATED"
ACCOUNT_UNLOCKED = "ACCOUNT_UNLOCKED"
ACCOUNT_UPDATED = "ACCOUNT_UPDATED"
ACCOUNT_DELETED = "ACCOUNT_DELETED"
LOGIN = "LOGIN"
LOGIN_FAILED = "LOGIN_FAILED"
PASSWORD_RESET_REQUESTED = "PASSWORD_RESET_REQUESTED"
PASSWORD_RESET = "PASSWORD_RESET"
PASSWORD_CHANGED = "PASSWORD_CHANGED"
PROFILE_UPDATED = "PROFILE_UPDATED"
LOAN_CREATED = "LOAN_CREATED"
LOAN_RETURNED = "LOAN_RETURNED"
BACKUP = "BACKUP"
RESTORE = "RESTORE"


def record(
    session: Session,
    action: str,
    description: str,
    account_id: int | None = None,
) -> AuditLogEntry:
    """
    Add an audit entry to the session. The caller commits, so the entry lands
    in the same transaction as the action it describes.
    """
    entry = AuditLogEntry(action=action, description=description, account_id=account_id)
    session.add(entry)
    logger.info("audit action=%s account_id=%s %s", action, account_id, description)
    return entry


def latest_for_account(session: Session, account_id: int, limit: int = 50) -> list[AuditLogEntry]:
    """Most recent entries linked to one account, newest first."""
    return (
        session.query(AuditLogEntry)
        .filter(AuditLogEntry.account_id == account_id)
        .order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
        .limit(limit)
        .all()
    )
