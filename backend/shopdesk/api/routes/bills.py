"""Purchase bill history and customer bill listing."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shopdesk.api.deps import get_db
from shopdesk.services import bill_ingestion, sale_service

router = APIRouter()


@router.get("/purchase")
def list_purchase_bills(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    bills = bill_ingestion.list_purchase_bills(db, limit=limit, offset=offset)
    return {
        "success": True,
        "data": bills,
        "pagination": {"limit": limit, "offset": offset, "count": len(bills)},
    }


@router.get("/purchase/{bill_id}")
def get_purchase_bill(bill_id: int, db: Session = Depends(get_db)):
    return {"success": True, "data": bill_ingestion.get_purchase_bill(db, bill_id)}


@router.get("/sales")
def list_sale_bills(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    bills = sale_service.list_sale_bills(db, limit=limit, offset=offset)
    return {
        "success": True,
        "data": bills,
        "pagination": {"limit": limit, "offset": offset, "count": len(bills)},
    }
