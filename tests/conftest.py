"""Test environment: settings are read at import time, so set them before bookloan is imported."""

import os

os.environ.setdefault("JWT_SECRET", "test-signing-secret-not-for-production-use-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("APP_ENV", "dev")

import bookloan.core.security as security  # noqa: E402

# Minimum bcrypt cost keeps the suite fast; hashes stay valid bcrypt.
security.BCRYPT_ROUNDS = 4
