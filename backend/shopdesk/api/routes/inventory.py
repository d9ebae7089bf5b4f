"""Inventory CRUD, lookups and purchase-bill processing."""
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from shopdesk.api.deps import get_db, get_extractor, get_storage
from shopdesk.core.exceptions import ValidationError
from shopdesk.schemas.bill import BillUpload
from shopdesk.schemas.item import ItemCreate, ItemRecord, ItemUpdate
from shopdesk.services import bill_ingestion, inventory_service

router = APIRouter()


def _records(items) -> list:
    return [ItemRecord.model_validate(item) for item in items]


@router.get("/")
def list_inventory(
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    low_stock: bool = Query(False, alias="lowStock"),
    db: Session = Depends(get_db),
):
    items = inventory_service.list_items(db, category=category, search=search, low_stock=low_stock)
    return {"success": True, "data": _records(items), "count": len(items)}


@router.get("/meta/categories")
def list_categories(db: Session = Depends(get_db)):
    return {"success": True, "data": inventory_service.list_categories(db)}


@router.get("/alerts/low-stock")
def low_stock_alerts(db: Session = Depends(get_db)):
    items = inventory_service.low_stock_items(db)
    return {"success": True, "data": _records(items), "count": len(items)}


@router.get("/{item_id}")
def get_item(item_id: int, db: Session = Depends(get_db)):
    item = inventory_service.get_item(db, item_id)
    return {"success": True, "data": ItemRecord.model_validate(item)}


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_item(body: ItemCreate, db: Session = Depends(get_db)):
    item = inventory_service.create_item(db, body)
    return {"success": True, "data": ItemRecord.model_validate(item), "message": "Item added successfully"}


@router.put("/{item_id}")
def update_item(item_id: int, body: ItemUpdate, db: Session = Depends(get_db)):
    item = inventory_service.update_item(db, item_id, body)
    return {"success": True, "data": ItemRecord.model_validate(item), "message": "Item updated successfully"}


@router.delete("/{item_id}")
def delete_item(item_id: int, db: Session = Depends(get_db)):
    inventory_service.delete_item(db, item_id)
    return {"success": True, "message": "Item deleted successfully"}


@router.post("/process-bill")
def process_bill(
    bill_image: Optional[UploadFile] = File(None, alias="billImage"),
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
    extractor=Depends(get_extractor),
):
    """
    Store the uploaded bill, extract its lines and apply them to inventory.

    Lines that fail are skipped and counted in summary.failedItems.
    """
    if bill_image is None:
        raise ValidationError("Bill image is required")

    upload = BillUpload(
        filename=bill_image.filename or "bill",
        content_type=bill_image.content_type or "application/octet-stream",
        data=bill_image.file.read(),
    )
    result = bill_ingestion.process_bill(db, upload, storage, extractor)
    return {
        "success": True,
        "data": result,
        "message": f"Successfully processed {result.summary.processedItems} items from bill",
    }
