"""Request/response schemas for login, token refresh and password rules."""

import re
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from bookloan.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN

# Each rule is (pattern, message); all must match.
PASSWORD_RULES: tuple[tuple[str, str], ...] = (
    (r"[A-Z]", "Password must contain at least one upper-case letter"),
    (r"[a-z]", "Password must contain at least one lower-case letter"),
    (r"[0-9]", "Password must contain at least one digit"),
    (r"[^A-Za-z0-9]", "Password must contain at least one symbol"),
)


def validate_password_strength(value: str) -> str:
    """Enforce length and character-class rules for new passwords."""
    if not (PASSWORD_MIN_LEN <= len(value) <= PASSWORD_MAX_LEN):
        raise ValueError(
            f"Password must be between {PASSWORD_MIN_LEN} and {PASSWORD_MAX_LEN} characters"
        )
    for pattern, message in PASSWORD_RULES:
        if not re.search(pattern, value):
            raise ValueError(message)
    return value


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: EmailStr = Field(..., description="Account email")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1, description="Refresh token from login")


class TokenResponse(BaseModel):
    """JWT pair returned after login or refresh."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str | None = Field(default=None, description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")


class AccountSummary(BaseModel):
    """Minimal identity returned with a successful login."""

    model_config = {"from_attributes": True}

    id: int
    name: str
    email: str
    access_level: int


class LoginResponse(TokenResponse):
    account: AccountSummary
    last_login_at: datetime | None = Field(
        default=None,
        description="Previous successful login; null on first access.",
    )
