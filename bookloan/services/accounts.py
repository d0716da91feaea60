"""Account lifecycle: registration, activation, login-attempt guard, recovery and admin actions.

Lockout state machine:

    OK (failed_attempts < LOGIN_MAX_FAILED_ATTEMPTS) --n-th failure--> LOCKED

LOCKED is left only through unlock(), a password reset (code or security
question) or an authenticated password change; each clears the lock and
resets the counter to 0.
"""

import hmac
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bookloan.core.errors import Conflict, Forbidden, NotFound, Unauthenticated, ValidationFailed
from bookloan.core.security import (
    ExpiredTokenError,
    InvalidTokenError,
    create_access_token,
    create_refresh_token,
    generate_code,
    hash_password,
    verify_password,
    verify_token,
)
from bookloan.models import Account
from bookloan.models.account import KIND_STUDENT, STATUS_ACTIVE, STATUS_INACTIVE
from bookloan.schemas.account import (
    AccountAdminUpdate,
    ProfileUpdate,
    RegisterRequest,
)
from bookloan.services import audit
from bookloan.services.mailer import activation_message, recovery_message, send_mail

if TYPE_CHECKING:
    from bookloan.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    account: Account
    access_token: str
    refresh_token: str
    previous_login_at: datetime | None


def _codes_match(expected: str | None, given: str) -> bool:
    if not expected:
        return False
    return hmac.compare_digest(expected.upper(), given.strip().upper())


def _hash_answer(answer: str) -> str:
    return hash_password(answer.strip().lower())


def _clear_lockout(account: Account) -> None:
    account.locked = False
    account.failed_attempts = 0


def find_by_email(session: Session, email: str) -> Account | None:
    """Non-deleted account with this exact email, or None."""
    return (
        session.query(Account)
        .filter(Account.email == email, Account.deleted.is_(False))
        .first()
    )


def get_account(session: Session, account_id: int) -> Account:
    """Non-deleted account by id; raises NotFound."""
    account = (
        session.query(Account)
        .filter(Account.id == account_id, Account.deleted.is_(False))
        .first()
    )
    if account is None:
        raise NotFound("Account not found")
    return account


def _require_by_email(session: Session, email: str) -> Account:
    account = find_by_email(session, email)
    if account is None:
        raise NotFound("Account not found")
    return account


def list_accounts(session: Session) -> list[Account]:
    return (
        session.query(Account)
        .filter(Account.deleted.is_(False))
        .order_by(Account.id)
        .all()
    )


def register(session: Session, settings: "Settings", body: RegisterRequest) -> Account:
    """
    Create an INACTIVE account and email its activation code.

    Raises Conflict when the email or registration number is already taken
    (soft-deleted rows included, since the unique constraints still apply).
    """
    clauses = [Account.email == body.email]
    if body.registration_number:
        clauses.append(Account.registration_number == body.registration_number)
    if session.query(Account.id).filter(or_(*clauses)).first() is not None:
        raise Conflict("Email or registration number already registered")

    code = generate_code()
    account = Account(
        kind=KIND_STUDENT,
        name=body.name,
        email=body.email,
        registration_number=body.registration_number,
        password_hash=hash_password(body.password),
        status=STATUS_INACTIVE,
        activation_code=code,
        security_question=body.security_question,
        security_answer_hash=_hash_answer(body.security_answer) if body.security_answer else None,
    )
    session.add(account)
    try:
        session.flush()
    except IntegrityError as e:
        session.rollback()
        raise Conflict("Email or registration number already registered") from e
    audit.record(session, audit.ACCOUNT_REGISTERED, f"New account registered: {account.email}", account.id)
    session.commit()
    session.refresh(account)

    subject, text = activation_message(settings, account.name, account.email, code)
    send_mail(settings, account.email, subject, text)
    return account


def authenticate(session: Session, settings: "Settings", email: str, password: str) -> LoginResult:
    """
    Check credentials through the login-attempt guard and issue tokens.

    Order: unknown email -> 401; locked -> 403; not ACTIVE -> 403;
    wrong password -> 401 after counting the failure (and locking on the
    threshold); otherwise reset the counter and stamp last_login_at.
    """
    account = find_by_email(session, email)
    if account is None:
        raise Unauthenticated("Invalid credentials")
    if account.locked:
        raise Forbidden("Account blocked. Contact an administrator or reset your password.")
    if account.status != STATUS_ACTIVE:
        raise Forbidden("Account not activated. Check your email.")

    if not verify_password(password, account.password_hash):
        threshold = settings.LOGIN_MAX_FAILED_ATTEMPTS
        session.execute(
            update(Account)
            .where(Account.id == account.id)
            .values(failed_attempts=func.coalesce(Account.failed_attempts, 0) + 1)
            .execution_options(synchronize_session=False)
        )
        session.execute(
            update(Account)
            .where(Account.id == account.id, Account.failed_attempts >= threshold)
            .values(locked=True)
            .execution_options(synchronize_session=False)
        )
        session.refresh(account)
        if account.locked:
            logger.warning("Account %s locked after %s failed logins", account.id, account.failed_attempts)
        audit.record(
            session,
            audit.LOGIN_FAILED,
            f"Failed login attempt {account.failed_attempts} for {account.email}",
            account.id,
        )
        session.commit()
        raise Unauthenticated(
            "Invalid credentials",
            details={
                "remaining_attempts": max(threshold - account.failed_attempts, 0),
                "locked": account.locked,
            },
        )

    previous_login_at = account.last_login_at
    account.failed_attempts = 0
    account.last_login_at = datetime.now(UTC)
    audit.record(session, audit.LOGIN, f"Successful login for {account.email}", account.id)
    session.commit()
    session.refresh(account)
    return LoginResult(
        account=account,
        access_token=create_access_token(account.id, account.access_level),
        refresh_token=create_refresh_token(account.id, account.access_level),
        previous_login_at=previous_login_at,
    )


def refresh_tokens(session: Session, refresh_token: str) -> tuple[Account, str, str]:
    """Exchange a refresh token for a new (access, refresh) pair; account must still be usable."""
    try:
        claims = verify_token(refresh_token, expected_type="refresh")
    except ExpiredTokenError as e:
        raise Unauthenticated("Refresh token expired") from e
    except InvalidTokenError as e:
        raise Unauthenticated("Invalid refresh token") from e
    account = (
        session.query(Account)
        .filter(Account.id == claims.account_id, Account.deleted.is_(False))
        .first()
    )
    if account is None or not account.is_active:
        raise Forbidden("Access denied. Account inactive or blocked.")
    return (
        account,
        create_access_token(account.id, account.access_level),
        create_refresh_token(account.id, account.access_level),
    )


def activate(session: Session, email: str, code: str) -> tuple[Account, str]:
    """Consume the activation code; returns the account and a fresh access token."""
    account = _require_by_email(session, email)
    if account.status == STATUS_ACTIVE:
        raise ValidationFailed("Account is already active")
    if not _codes_match(account.activation_code, code):
        raise ValidationFailed("Invalid activation code")
    account.status = STATUS_ACTIVE
    account.activation_code = None
    audit.record(session, audit.ACCOUNT_ACTIVATED, f"Account activated: {account.email}", account.id)
    session.commit()
    session.refresh(account)
    return account, create_access_token(account.id, account.access_level)


def request_password_reset(session: Session, settings: "Settings", email: str) -> None:
    """Overwrite the activation code with a recovery code and email it."""
    account = _require_by_email(session, email)
    code = generate_code()
    account.activation_code = code
    audit.record(
        session,
        audit.PASSWORD_RESET_REQUESTED,
        f"Password recovery requested for {account.email}",
        account.id,
    )
    session.commit()
    subject, text = recovery_message(settings, account.name, account.email, code)
    send_mail(settings, account.email, subject, text)


def reset_password(session: Session, email: str, code: str, new_password: str) -> tuple[Account, str]:
    """Set a new password using the emailed recovery code; clears any lockout."""
    account = _require_by_email(session, email)
    if not _codes_match(account.activation_code, code):
        raise ValidationFailed("Invalid recovery code")
    account.password_hash = hash_password(new_password)
    account.activation_code = None
    _clear_lockout(account)
    audit.record(session, audit.PASSWORD_RESET, f"Password reset for {account.email}", account.id)
    session.commit()
    session.refresh(account)
    return account, create_access_token(account.id, account.access_level)


def reset_password_with_answer(
    session: Session, email: str, answer: str, new_password: str
) -> tuple[Account, str]:
    """Set a new password by answering the security question; clears any lockout."""
    account = find_by_email(session, email)
    if account is None or not account.security_answer_hash:
        raise NotFound("Account not found or has no security question")
    if not verify_password(answer.strip().lower(), account.security_answer_hash):
        raise Unauthenticated("Incorrect security answer")
    account.password_hash = hash_password(new_password)
    _clear_lockout(account)
    audit.record(
        session,
        audit.PASSWORD_RESET,
        f"Password reset via security question for {account.email}",
        account.id,
    )
    session.commit()
    session.refresh(account)
    return account, create_access_token(account.id, account.access_level)


def change_password(session: Session, account: Account, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, account.password_hash):
        raise Unauthenticated("Current password is incorrect")
    account.password_hash = hash_password(new_password)
    _clear_lockout(account)
    audit.record(session, audit.PASSWORD_CHANGED, f"Password changed: {account.email}", account.id)
    session.commit()


def update_profile(session: Session, account: Account, body: ProfileUpdate) -> Account:
    if body.name is not None:
        account.name = body.name
    if body.security_question is not None:
        account.security_question = body.security_question
    if body.security_answer is not None:
        account.security_answer_hash = _hash_answer(body.security_answer)
    audit.record(session, audit.PROFILE_UPDATED, f"Profile updated: {account.email}", account.id)
    session.commit()
    session.refresh(account)
    return account


def unlock(session: Session, account_id: int, actor: Account) -> Account:
    """Administrative exit from LOCKED."""
    account = get_account(session, account_id)
    _clear_lockout(account)
    audit.record(
        session,
        audit.ACCOUNT_UNLOCKED,
        f"Account {account.email} unlocked by {actor.email}",
        actor.id,
    )
    session.commit()
    session.refresh(account)
    return account


def admin_update(session: Session, account_id: int, body: AccountAdminUpdate, actor: Account) -> Account:
    account = get_account(session, account_id)
    changes = body.model_dump(exclude_none=True)
    if not changes:
        raise ValidationFailed("No fields to update")
    for field, value in changes.items():
        setattr(account, field, value)
    audit.record(
        session,
        audit.ACCOUNT_UPDATED,
        f"Account {account.email} updated by {actor.email}: {changes}",
        actor.id,
    )
    session.commit()
    session.refresh(account)
    return account


def soft_delete(session: Session, account_id: int, actor: Account) -> None:
    """Mark deleted, deactivate and lock; the row stays for loan history."""
    account = get_account(session, account_id)
    account.deleted = True
    account.deleted_at = datetime.now(UTC)
    account.status = STATUS_INACTIVE
    account.locked = True
    audit.record(
        session,
        audit.ACCOUNT_DELETED,
        f"Account {account.email} deleted by {actor.email}",
        actor.id,
    )
    session.commit()
