"""Pydantic schemas for inventory items."""

from datetime import datetime

from pydantic import BaseModel, Field


class ItemCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=255)
    author: str = Field(..., min_length=3, max_length=255)
    available: int = Field(..., gt=0, description="Copies on the shelf; must be positive.")


class ItemReplace(BaseModel):
    """Full update (PUT)."""

    title: str = Field(..., min_length=3, max_length=255)
    author: str = Field(..., min_length=3, max_length=255)
    available: int = Field(..., ge=0)


class ItemPatch(BaseModel):
    """Partial update (PATCH); omitted fields are left unchanged."""

    title: str | None = Field(default=None, min_length=3, max_length=255)
    author: str | None = Field(default=None, min_length=3, max_length=255)
    available: int | None = Field(default=None, ge=0)


class ItemOut(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    title: str
    author: str
    available: int
    created_at: datetime | None = None


class ItemsListResponse(BaseModel):
    items: list[ItemOut]
