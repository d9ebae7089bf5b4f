from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal


class ItemBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    quantity: int = Field(..., ge=0)
    unit_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    cost_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    low_stock_threshold: int = Field(10, ge=0)
    barcode: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = " ".join(v.split())
        if not v:
            raise ValueError("Item name is required")
        return v


class ItemCreate(ItemBase):
    pass


class ItemUpdate(ItemBase):
    """Full replacement, as PUT /inventory/{id} does."""


class ItemRecord(BaseModel):
    id: int
    name: str
    category: Optional[str] = None
    quantity: int
    unit_price: Decimal
    cost_price: Optional[Decimal] = None
    low_stock_threshold: Optional[int] = None
    barcode: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
