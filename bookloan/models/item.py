"""ORM model for lendable inventory items (books)."""

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, func

from bookloan.models.base import Base, SoftDeleteMixin


class InventoryItem(SoftDeleteMixin, Base):
    """A title in the catalogue; available is the number of copies on the shelf."""

    __tablename__ = "inventory_items"
    __table_args__ = (
        CheckConstraint("available >= 0", name="ck_inventory_items_available_non_negative"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False, index=True)
    author = Column(String(255), nullable=False)
    available = Column(Integer, nullable=False, default=0)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
