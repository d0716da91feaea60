"""Auth dependencies: get_current_account (token -> account) and require_level (access tiers)."""

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import Cookie, Depends, HTTPException, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from bookloan.core.config import settings
from bookloan.core.database import get_db
from bookloan.core.errors import Forbidden
from bookloan.core.security import (
    ExpiredTokenError,
    InvalidTokenError,
    TokenClaims,
    create_access_token,
    create_refresh_token,
    verify_token,
)
from bookloan.models import Account

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ACCESS_COOKIE = "token"
REFRESH_COOKIE = "refreshToken"


def _unauthenticated(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def set_token_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    """Store both tokens as HTTP-only cookies for cookie-based clients."""
    secure = settings.APP_ENV == "prod"
    response.set_cookie(
        ACCESS_COOKIE,
        access_token,
        max_age=settings.JWT_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=secure,
        samesite="lax",
    )
    response.set_cookie(
        REFRESH_COOKIE,
        refresh_token,
        max_age=settings.JWT_REFRESH_EXPIRE_DAYS * 24 * 3600,
        httponly=True,
        secure=secure,
        samesite="lax",
    )


def _refresh_from_cookie(refresh_token: str | None, response: Response) -> TokenClaims:
    """Silent refresh: an expired access token plus a valid refresh cookie yields a new pair."""
    if not refresh_token:
        raise _unauthenticated("Invalid or expired token")
    try:
        claims = verify_token(refresh_token, expected_type="refresh")
    except InvalidTokenError:
        raise _unauthenticated("Invalid or expired token")
    set_token_cookies(
        response,
        create_access_token(claims.account_id, claims.access_level),
        create_refresh_token(claims.account_id, claims.access_level),
    )
    logger.debug("Rotated token cookies for account %s", claims.account_id)
    return claims


def get_current_account(
    response: Response,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    token: Annotated[str | None, Cookie(alias=ACCESS_COOKIE)] = None,
    refresh_token: Annotated[str | None, Cookie(alias=REFRESH_COOKIE)] = None,
) -> Account:
    """
    Dependency: resolve the caller's account.

    401 when the token is missing or fails verification; 403 when the
    account is unknown, deleted, not ACTIVE or locked.
    """
    raw = credentials.credentials if credentials is not None else token
    if not raw:
        raise _unauthenticated("Not authenticated")
    try:
        claims = verify_token(raw)
    except ExpiredTokenError:
        claims = _refresh_from_cookie(refresh_token, response)
    except InvalidTokenError:
        raise _unauthenticated("Invalid or expired token")

    account = (
        db.query(Account)
        .filter(Account.id == claims.account_id, Account.deleted.is_(False))
        .first()
    )
    if account is None or not account.is_active:
        raise Forbidden("Access denied. Account inactive or blocked.")
    return account


CurrentAccount = Annotated[Account, Depends(get_current_account)]


def require_level(required_level: int) -> Callable[[Account], Account]:
    """Build a dependency that admits accounts with access_level >= required_level."""

    def dependency(current: CurrentAccount) -> Account:
        if current.access_level < required_level:
            raise Forbidden(
                "Insufficient permission",
                details={
                    "required_level": required_level,
                    "current_level": current.access_level,
                },
            )
        return current

    return dependency
