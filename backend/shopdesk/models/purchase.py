"""
Purchase bills recorded by the bill ingestion pipeline.
processed_data keeps the raw extraction payload as returned by the extractor.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from shopdesk.db.base import Base


class PurchaseBill(Base):
    __tablename__ = "purchase_bills"

    id = Column(Integer, primary_key=True, index=True)
    vendor_name = Column(String(255), nullable=True)
    bill_number = Column(String(100), nullable=True)
    total_amount = Column(Numeric(10, 2), nullable=True)
    bill_image_url = Column(String(500), nullable=True)
    processed_data = Column(JSON, nullable=True)
    status = Column(String(50), default="processed")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    items = relationship(
        "PurchaseItem",
        back_populates="bill",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PurchaseItem.id",
    )


class PurchaseItem(Base):
    __tablename__ = "purchase_items"

    id = Column(Integer, primary_key=True, index=True)
    bill_id = Column(Integer, ForeignKey("purchase_bills.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    bill = relationship("PurchaseBill", back_populates="items")
    item = relationship("Item")
