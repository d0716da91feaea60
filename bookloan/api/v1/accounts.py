"""Account endpoints: registration, login, activation, password recovery, profile and admin actions."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from bookloan.api.v1.auth import CurrentAccount, require_level, set_token_cookies
from bookloan.core.config import get_settings
from bookloan.core.database import get_db
from bookloan.models import Account
from bookloan.models.account import LEVEL_STAFF_ADMIN, LEVEL_SUPERADMIN
from bookloan.schemas.account import (
    AccountAdminUpdate,
    AccountOut,
    AccountsListResponse,
    ActivateRequest,
    AuditLogListResponse,
    AuditLogOut,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    MessageResponse,
    ProfileUpdate,
    RegisterRequest,
    ResetPasswordQuestionRequest,
    ResetPasswordRequest,
)
from bookloan.schemas.auth import (
    AccountSummary,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    TokenResponse,
)
from bookloan.services import accounts as account_service
from bookloan.services import audit

router = APIRouter()

DbSession = Annotated[Session, Depends(get_db)]
StaffAdmin = Annotated[Account, Depends(require_level(LEVEL_STAFF_ADMIN))]
SuperAdmin = Annotated[Account, Depends(require_level(LEVEL_SUPERADMIN))]


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, db: DbSession) -> MessageResponse:
    """Create an INACTIVE account; an activation code is sent to the email address."""
    account_service.register(db, get_settings(), body)
    return MessageResponse(message="Account registered. Check your email to activate it.")


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, db: DbSession, response: Response) -> LoginResponse:
    """
    Authenticate with email and password; returns access and refresh tokens.

    Include the access token as: Authorization: Bearer <access_token>.
    Tokens are also set as HTTP-only cookies for browser clients.
    Consecutive failures lock the account (403 on later attempts).
    """
    result = account_service.authenticate(db, get_settings(), body.email, body.password)
    set_token_cookies(response, result.access_token, result.refresh_token)
    return LoginResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        account=AccountSummary.model_validate(result.account),
        last_login_at=result.previous_login_at,
    )


@router.post("/refresh", response_model=TokenResponse)
def refresh(body: RefreshRequest, db: DbSession, response: Response) -> TokenResponse:
    """Exchange a refresh token for a new token pair."""
    _, access_token, refresh_token = account_service.refresh_tokens(db, body.refresh_token)
    set_token_cookies(response, access_token, refresh_token)
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)


@router.post("/activate", response_model=MessageResponse)
def activate(body: ActivateRequest, db: DbSession) -> MessageResponse:
    _, token = account_service.activate(db, body.email, body.code)
    return MessageResponse(message="Account activated", access_token=token)


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(body: ForgotPasswordRequest, db: DbSession) -> MessageResponse:
    account_service.request_password_reset(db, get_settings(), body.email)
    return MessageResponse(message="Recovery code sent to your email")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(body: ResetPasswordRequest, db: DbSession) -> MessageResponse:
    _, token = account_service.reset_password(db, body.email, body.code, body.new_password)
    return MessageResponse(message="Password reset", access_token=token)


@router.post("/reset-password-question", response_model=MessageResponse)
def reset_password_question(body: ResetPasswordQuestionRequest, db: DbSession) -> MessageResponse:
    _, token = account_service.reset_password_with_answer(
        db, body.email, body.answer, body.new_password
    )
    return MessageResponse(message="Password reset", access_token=token)


@router.get("/me", response_model=AccountOut)
def get_profile(current: CurrentAccount) -> AccountOut:
    return AccountOut.model_validate(current)


@router.put("/me", response_model=AccountOut)
def update_profile(body: ProfileUpdate, current: CurrentAccount, db: DbSession) -> AccountOut:
    account = account_service.update_profile(db, current, body)
    return AccountOut.model_validate(account)


@router.put("/me/password", response_model=MessageResponse)
def change_password(body: ChangePasswordRequest, current: CurrentAccount, db: DbSession) -> MessageResponse:
    account_service.change_password(db, current, body.current_password, body.new_password)
    return MessageResponse(message="Password changed")


@router.get("/me/logs", response_model=AuditLogListResponse)
def my_logs(current: CurrentAccount, db: DbSession) -> AuditLogListResponse:
    """Latest 50 audit entries linked to the caller."""
    entries = audit.latest_for_account(db, current.id)
    return AuditLogListResponse(logs=[AuditLogOut.model_validate(e) for e in entries])


@router.get("", response_model=AccountsListResponse)
def list_accounts(_staff: StaffAdmin, db: DbSession) -> AccountsListResponse:
    accounts = account_service.list_accounts(db)
    return AccountsListResponse(accounts=[AccountOut.model_validate(a) for a in accounts])


@router.get("/{account_id}", response_model=AccountOut)
def get_account(account_id: int, _staff: StaffAdmin, db: DbSession) -> AccountOut:
    return AccountOut.model_validate(account_service.get_account(db, account_id))


@router.patch("/{account_id}", response_model=AccountOut)
def admin_update_account(
    account_id: int, body: AccountAdminUpdate, admin: SuperAdmin, db: DbSession
) -> AccountOut:
    """Change another account's access level or status (superadmin only)."""
    account = account_service.admin_update(db, account_id, body, admin)
    return AccountOut.model_validate(account)


@router.post("/{account_id}/unlock", response_model=AccountOut)
def unlock_account(account_id: int, admin: SuperAdmin, db: DbSession) -> AccountOut:
    """Clear a lockout and reset the failed-attempt counter."""
    account = account_service.unlock(db, account_id, admin)
    return AccountOut.model_validate(account)


@router.delete("/{account_id}", response_model=MessageResponse)
def delete_account(account_id: int, admin: SuperAdmin, db: DbSession) -> MessageResponse:
    account_service.soft_delete(db, account_id, admin)
    return MessageResponse(message="Account marked as deleted")
