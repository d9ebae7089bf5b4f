"""Bill Schema - Strict JSON structure for extracted purchase bills.

Whatever produced the payload (vision LLM, text LLM, OCR fallback), it is
validated against this schema before anything touches inventory.
"""

from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ExtractedLine(BaseModel):
    """One purchased product line as printed on the bill."""
    model_config = ConfigDict(populate_by_name=True)

    item: str
    quantity: Decimal
    price: Decimal
    total: Optional[Decimal] = None

    @field_validator("item", mode="before")
    @classmethod
    def clean_item_name(cls, v):
        """Collapse whitespace; an empty name is not a usable line."""
        if not isinstance(v, str):
            raise ValueError("item name must be a string")
        v = " ".join(v.split())
        if not v:
            raise ValueError("item name is empty")
        return v[:255]

    @field_validator("quantity", "price", "total", mode="before")
    @classmethod
    def reject_non_numeric(cls, v):
        # bool is an int subclass; "true" is never a quantity
        if isinstance(v, bool):
            raise ValueError("expected a number")
        return v

    @model_validator(mode="after")
    def fill_missing_total(self):
        """Calculate total if missing (quantity x unit price)."""
        if self.total is None or self.total == 0:
            self.total = self.quantity * self.price
        return self


class ExtractedBill(BaseModel):
    """Validated output of the extraction collaborator.

    Field names follow the wire format the extractor is prompted with:
        {vendor, billNumber, date, grandTotal, items: [{item, quantity, price, total}]}
    """
    model_config = ConfigDict(populate_by_name=True)

    vendor: str = ""
    bill_number: str = Field("", alias="billNumber")
    date: str = ""
    grand_total: Optional[Decimal] = Field(None, alias="grandTotal")
    items: List[ExtractedLine]

    @field_validator("vendor", "bill_number", "date", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("items")
    @classmethod
    def require_items(cls, v: List[ExtractedLine]) -> List[ExtractedLine]:
        if not v:
            raise ValueError("no items found on the bill")
        return v

    @model_validator(mode="after")
    def fill_grand_total(self):
        if self.grand_total is None:
            self.grand_total = sum((line.total for line in self.items), Decimal("0"))
        return self

    def to_payload(self) -> dict:
        """JSON-safe dict in the wire format, stored as processed_data."""
        return {
            "vendor": self.vendor,
            "billNumber": self.bill_number,
            "date": self.date,
            "grandTotal": float(self.grand_total),
            "items": [
                {
                    "item": line.item,
                    "quantity": float(line.quantity),
                    "price": float(line.price),
                    "total": float(line.total),
                }
                for line in self.items
            ],
        }
