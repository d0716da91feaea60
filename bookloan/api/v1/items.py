"""Inventory endpoints. Every route requires authentication; writes require staff levels."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from bookloan.api.v1.auth import get_current_account, require_level
from bookloan.core.database import get_db
from bookloan.models.account import LEVEL_STAFF_ADMIN, LEVEL_SUPERADMIN
from bookloan.schemas.account import MessageResponse
from bookloan.schemas.item import ItemCreate, ItemOut, ItemPatch, ItemReplace, ItemsListResponse
from bookloan.services import inventory

router = APIRouter(dependencies=[Depends(get_current_account)])

DbSession = Annotated[Session, Depends(get_db)]


@router.get("", response_model=ItemsListResponse)
def list_items(db: DbSession) -> ItemsListResponse:
    """Items not soft-deleted, ordered by title."""
    items = inventory.list_items(db)
    return ItemsListResponse(items=[ItemOut.model_validate(i) for i in items])


@router.get("/{item_id}", response_model=ItemOut)
def get_item(item_id: int, db: DbSession) -> ItemOut:
    return ItemOut.model_validate(inventory.get_item(db, item_id))


@router.post(
    "",
    response_model=ItemOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_level(LEVEL_STAFF_ADMIN))],
)
def create_item(body: ItemCreate, db: DbSession) -> ItemOut:
    return ItemOut.model_validate(inventory.create_item(db, body))


@router.put(
    "/{item_id}",
    response_model=ItemOut,
    dependencies=[Depends(require_level(LEVEL_STAFF_ADMIN))],
)
def replace_item(item_id: int, body: ItemReplace, db: DbSession) -> ItemOut:
    return ItemOut.model_validate(inventory.update_item(db, item_id, body))


@router.patch(
    "/{item_id}",
    response_model=ItemOut,
    dependencies=[Depends(require_level(LEVEL_STAFF_ADMIN))],
)
def patch_item(item_id: int, body: ItemPatch, db: DbSession) -> ItemOut:
    return ItemOut.model_validate(inventory.update_item(db, item_id, body))


@router.delete(
    "/{item_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_level(LEVEL_SUPERADMIN))],
)
def delete_item(item_id: int, db: DbSession) -> MessageResponse:
    inventory.soft_delete_item(db, item_id)
    return MessageResponse(message="Item marked as deleted")
