"""Request/response shapes for the sale processor."""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from shopdesk.models.sale import PaymentMethod


class SaleLineRequest(BaseModel):
    item_id: int
    quantity: int = Field(..., ge=1)


class SaleCreate(BaseModel):
    items: List[SaleLineRequest] = Field(..., min_length=1)
    customer_name: Optional[str] = Field(None, max_length=255)
    customer_phone: Optional[str] = Field(None, max_length=20)
    payment_method: PaymentMethod = PaymentMethod.CASH


class SaleLineRecord(BaseModel):
    id: int
    item_id: int
    item_name: Optional[str] = None
    category: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class SaleRecord(BaseModel):
    id: int
    total_amount: Decimal
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    payment_method: str
    bill_pdf_url: Optional[str] = None
    created_at: Optional[datetime] = None
    item_count: int = 0
    items: List[SaleLineRecord] = []


class SaleBillRecord(BaseModel):
    """Customer bill listing: the sale header and its PDF link."""
    id: int
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    total_amount: Decimal
    payment_method: str
    bill_pdf_url: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
