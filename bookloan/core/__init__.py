"""Core app configuration, database and security primitives."""

from bookloan.core.config import get_settings, settings
from bookloan.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
