"""Password hashing, one-time codes, and JWT issuing/verification."""

import secrets
import string
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

import bcrypt
import jwt

from bookloan.core.config import settings

BCRYPT_ROUNDS = 12

PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

CODE_LENGTH = 6
CODE_ALPHABET = string.ascii_uppercase + string.digits

TokenType = Literal["access", "refresh"]


class InvalidTokenError(Exception):
    """Token signature, structure or type is not acceptable."""


class ExpiredTokenError(InvalidTokenError):
    """Token signature is valid but its expiry is in the past."""


@dataclass(frozen=True)
class TokenClaims:
    """Identity asserted by a verified token."""

    account_id: int
    access_level: int


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; validation already caps length at 128 chars.
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str | None) -> bool:
    """Verify a plain password against a stored hash."""
    if not hashed:
        return False
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def generate_code() -> str:
    """Random upper-case alphanumeric code for activation and password recovery."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def _encode(account_id: int, access_level: int, token_type: TokenType, ttl: timedelta) -> str:
    now = datetime.now(UTC)
    payload: dict[str, Any] = {
        "sub": str(account_id),
        "level": access_level,
        "type": token_type,
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(
        payload,
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def create_access_token(
    account_id: int, access_level: int, ttl: timedelta | None = None
) -> str:
    """Short-lived token carrying account id and access level."""
    if ttl is None:
        ttl = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    return _encode(account_id, access_level, "access", ttl)


def create_refresh_token(account_id: int, access_level: int) -> str:
    """Long-lived token used only to obtain a new access token."""
    return _encode(
        account_id,
        access_level,
        "refresh",
        timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS),
    )


def verify_token(token: str, expected_type: TokenType = "access") -> TokenClaims:
    """
    Decode and validate a JWT; return its claims.

    Raises ExpiredTokenError when the signature is valid but exp has passed,
    InvalidTokenError for everything else.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise ExpiredTokenError("Token has expired") from e
    except jwt.PyJWTError as e:
        raise InvalidTokenError("Invalid token") from e

    if payload.get("type") != expected_type:
        raise InvalidTokenError("Unexpected token type")
    try:
        account_id = int(payload["sub"])
        access_level = int(payload.get("level", 0))
    except (TypeError, ValueError) as e:
        raise InvalidTokenError("Invalid token payload") from e
    return TokenClaims(account_id=account_id, access_level=access_level)
