"""Inventory items: list, read, create, update and soft delete."""

from datetime import UTC, datetime

from sqlalchemy.orm import Session

from bookloan.core.errors import NotFound, ValidationFailed
from bookloan.models import InventoryItem
from bookloan.schemas.item import ItemCreate, ItemPatch, ItemReplace


def list_items(session: Session) -> list[InventoryItem]:
    return (
        session.query(InventoryItem)
        .filter(InventoryItem.deleted.is_(False))
        .order_by(InventoryItem.title, InventoryItem.id)
        .all()
    )


def get_item(session: Session, item_id: int) -> InventoryItem:
    item = (
        session.query(InventoryItem)
        .filter(InventoryItem.id == item_id, InventoryItem.deleted.is_(False))
        .first()
    )
    if item is None:
        raise NotFound("Item not found")
    return item


def create_item(session: Session, body: ItemCreate) -> InventoryItem:
    item = InventoryItem(title=body.title, author=body.author, available=body.available)
    session.add(item)
    session.commit()
    session.refresh(item)
    return item


def update_item(session: Session, item_id: int, body: ItemReplace | ItemPatch) -> InventoryItem:
    """Apply a full (PUT) or partial (PATCH) update; PATCH leaves omitted fields unchanged."""
    item = get_item(session, item_id)
    changes = body.model_dump(exclude_none=True)
    if not changes:
        raise ValidationFailed("No fields to update")
    for field, value in changes.items():
        setattr(item, field, value)
    session.commit()
    session.refresh(item)
    return item


def soft_delete_item(session: Session, item_id: int) -> None:
    item = get_item(session, item_id)
    item.deleted = True
    item.deleted_at = datetime.now(UTC)
    session.commit()
