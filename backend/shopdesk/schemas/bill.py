"""Request/response shapes for the bill ingestion pipeline."""
from pydantic import BaseModel
from typing import Any, List, Optional
from datetime import datetime
from decimal import Decimal


class BillUpload(BaseModel):
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class PurchaseLineRecord(BaseModel):
    id: int
    item_id: int
    item_name: Optional[str] = None
    category: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class PurchaseBillRecord(BaseModel):
    id: int
    vendor_name: Optional[str] = None
    bill_number: Optional[str] = None
    total_amount: Optional[Decimal] = None
    bill_image_url: Optional[str] = None
    processed_data: Optional[Any] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    item_count: int = 0
    items: List[PurchaseLineRecord] = []


class ProcessedItem(BaseModel):
    """An inventory item touched by ingestion, tagged with what happened to it."""
    id: int
    name: str
    quantity: int
    unit_price: Decimal
    cost_price: Optional[Decimal] = None
    action: str  # "updated" | "created"
    purchased_quantity: int
    purchase_price: Decimal


class IngestionSummary(BaseModel):
    totalItems: int
    processedItems: int
    failedItems: int
    vendor: Optional[str] = None
    totalAmount: Optional[Decimal] = None
    errors: List[str] = []


class IngestionResult(BaseModel):
    bill: PurchaseBillRecord
    items: List[ProcessedItem]
    summary: IngestionSummary
