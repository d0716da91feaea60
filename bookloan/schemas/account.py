"""Pydantic schemas for account registration, activation, recovery and admin updates."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from bookloan.schemas.auth import validate_password_strength

AccountKind = Literal["student", "staff"]
AccountStatus = Literal["INACTIVE", "ACTIVE"]


class RegisterRequest(BaseModel):
    """Self-service registration. Accounts start as INACTIVE students until activated."""

    name: str = Field(..., min_length=3, max_length=255)
    email: EmailStr
    password: str
    registration_number: str | None = Field(
        default=None,
        min_length=5,
        max_length=64,
        description="Student enrolment number.",
    )
    security_question: str | None = Field(default=None, min_length=5, max_length=255)
    security_answer: str | None = Field(default=None, min_length=2, max_length=255)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)

    @model_validator(mode="after")
    def question_and_answer_together(self) -> "RegisterRequest":
        if (self.security_question is None) != (self.security_answer is None):
            raise ValueError("security_question and security_answer must be given together")
        return self


class ActivateRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=1, max_length=16)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Reset with the emailed recovery code."""

    email: EmailStr
    code: str = Field(..., min_length=1, max_length=16)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return validate_password_strength(v)


class ResetPasswordQuestionRequest(BaseModel):
    """Reset by answering the security question set at registration."""

    email: EmailStr
    answer: str = Field(..., min_length=1, max_length=255)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return validate_password_strength(v)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return validate_password_strength(v)


class ProfileUpdate(BaseModel):
    """Fields an account holder may change on their own profile; all optional."""

    name: str | None = Field(default=None, min_length=3, max_length=255)
    security_question: str | None = Field(default=None, min_length=5, max_length=255)
    security_answer: str | None = Field(default=None, min_length=2, max_length=255)


class AccountAdminUpdate(BaseModel):
    """Superadmin changes to another account."""

    access_level: int | None = Field(default=None, ge=0, le=3)
    status: AccountStatus | None = None
    kind: AccountKind | None = None


class AccountOut(BaseModel):
    """Account as shown to its holder and to staff (no secrets)."""

    model_config = {"from_attributes": True}

    id: int
    kind: AccountKind
    name: str
    email: str
    registration_number: str | None = None
    access_level: int
    status: AccountStatus
    locked: bool
    failed_attempts: int
    security_question: str | None = None
    last_login_at: datetime | None = None
    created_at: datetime | None = None


class AccountsListResponse(BaseModel):
    accounts: list[AccountOut]


class AuditLogOut(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    action: str
    description: str
    account_id: int | None = None
    created_at: datetime


class AuditLogListResponse(BaseModel):
    logs: list[AuditLogOut]


class MessageResponse(BaseModel):
    """Generic acknowledgement, optionally carrying a fresh access token."""

    message: str
    access_token: str | None = None
