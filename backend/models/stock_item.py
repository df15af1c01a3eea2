# backend/models/stock_item.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, CheckConstraint, SmallInteger
from sqlalchemy.orm import relationship
from database import Base


def _utcnow():
    return datetime.now(timezone.utc)


# Model StockItem
# A single tracked stock position: quantities, where it is stored and free-form notes.
# Photos are owned by the item; removing them (and their files) is the job of
# services.stock_items, the FK cascade below is only a database-level backstop.
class StockItem(Base):
    __tablename__ = "stock_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    # Empty string means "uncategorized"
    category = Column(String(255), nullable=False, default="")

    qty = Column(Integer, CheckConstraint("qty >= 0"), nullable=False, default=0)
    min_qty = Column(Integer, CheckConstraint("min_qty >= 0"), nullable=False, default=0)

    location = Column(String(255), nullable=False, default="")
    notes = Column(String(2000), nullable=False, default="")

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    photos = relationship(
        "StockItemPhoto",
        back_populates="stock_item",
        order_by="StockItemPhoto.sort_order",
        passive_deletes=True,
    )

    @property
    def low_stock(self) -> bool:
        return self.min_qty > 0 and self.qty <= self.min_qty


class StockItemPhoto(Base):
    __tablename__ = "stock_item_photos"

    id = Column(Integer, primary_key=True, index=True)
    stock_item_id = Column(
        Integer, ForeignKey("stock_items.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Storage key relative to the blob root, e.g. stock-photos/<hex>.webp
    path = Column(String(255), nullable=False)
    sort_order = Column(SmallInteger, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    stock_item = relationship("StockItem", back_populates="photos")
