"""Pydantic request/response schemas."""

from bookloan.schemas.account import AccountOut, MessageResponse, RegisterRequest
from bookloan.schemas.admin import BackupResponse, RestoreRequest, RestoreResponse
from bookloan.schemas.auth import LoginRequest, LoginResponse, TokenResponse
from bookloan.schemas.health import HealthResponse
from bookloan.schemas.item import ItemCreate, ItemOut
from bookloan.schemas.loan import LoanCreate, LoanOut

__all__ = [
    "AccountOut",
    "BackupResponse",
    "HealthResponse",
    "ItemCreate",
    "ItemOut",
    "LoanCreate",
    "LoanOut",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "RegisterRequest",
    "RestoreRequest",
    "RestoreResponse",
    "TokenResponse",
]
