"""Pydantic schemas for loans."""

from datetime import date, datetime

from pydantic import BaseModel, Field


class LoanCreate(BaseModel):
    account_id: int = Field(..., gt=0)
    item_id: int = Field(..., gt=0)
    due_date: date = Field(..., description="Return-by date (YYYY-MM-DD); must be in the future.")


class LoanReplace(LoanCreate):
    """Full update (PUT) of an open loan."""


class LoanPatch(BaseModel):
    account_id: int | None = Field(default=None, gt=0)
    item_id: int | None = Field(default=None, gt=0)
    due_date: date | None = None


class LoanAccountRef(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    name: str
    email: str


class LoanItemRef(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    title: str
    author: str


class LoanOut(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    account_id: int
    item_id: int
    loaned_at: datetime
    due_date: date
    returned: bool
    returned_at: datetime | None = None
    overdue: bool = False
    account: LoanAccountRef | None = None
    item: LoanItemRef | None = None


class Pagination(BaseModel):
    page: int
    page_size: int
    total_items: int
    total_pages: int


class LoansListResponse(BaseModel):
    loans: list[LoanOut]
    pagination: Pagination


class LoanReturnResponse(BaseModel):
    loan: LoanOut
    item_available: int = Field(..., description="Copies on the shelf after the return.")
