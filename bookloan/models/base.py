"""SQLAlchemy declarative Base and shared model configuration."""

from sqlalchemy import Boolean, Column, DateTime, false
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    pass


class SoftDeleteMixin:
    """Rows are never physically removed; they are flagged and timestamped."""

    deleted = Column(Boolean, nullable=False, default=False, server_default=false())
    deleted_at = Column(DateTime(timezone=True), nullable=True)
