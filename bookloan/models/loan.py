"""ORM model for loans of an inventory item to an account."""

from datetime import UTC, date, datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship

from bookloan.models.base import Base, SoftDeleteMixin


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Loan(SoftDeleteMixin, Base):
    """Open while returned is False; closed exactly once."""

    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False, index=True)
    loaned_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    due_date = Column(Date, nullable=False)
    returned = Column(Boolean, nullable=False, default=False, index=True)
    returned_at = Column(DateTime(timezone=True), nullable=True)

    account = relationship("Account", lazy="joined")
    item = relationship("InventoryItem", lazy="joined")

    @property
    def overdue(self) -> bool:
        return not self.returned and self.due_date < date.today()
