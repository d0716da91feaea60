"""SQLAlchemy ORM models."""

from bookloan.models.account import Account
from bookloan.models.audit_log import AuditLogEntry
from bookloan.models.base import Base
from bookloan.models.item import InventoryItem
from bookloan.models.loan import Loan

__all__ = ["Account", "AuditLogEntry", "Base", "InventoryItem", "Loan"]
