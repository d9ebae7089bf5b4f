"""Sales: create, reverse, list, stats and bill regeneration."""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shopdesk.api.deps import get_db, get_renderer
from shopdesk.core.exceptions import InsufficientStockError, NotFoundError, error_response
from shopdesk.schemas.sale import SaleCreate
from shopdesk.services import sale_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
def list_sales(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    sales = sale_service.list_sales(db, start_date, end_date, limit=limit, offset=offset)
    return {
        "success": True,
        "data": sales,
        "pagination": {"limit": limit, "offset": offset, "count": len(sales)},
    }


@router.get("/stats/summary")
def sales_summary(
    period: str = Query("today", pattern="^(today|week|month|year|all)$"),
    db: Session = Depends(get_db),
):
    return {"success": True, "data": sale_service.sales_summary(db, period)}


@router.get("/{sale_id}")
def get_sale(sale_id: int, db: Session = Depends(get_db)):
    return {"success": True, "data": sale_service.get_sale(db, sale_id)}


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_sale(
    body: SaleCreate,
    db: Session = Depends(get_db),
    renderer=Depends(get_renderer),
):
    """
    Validate the basket, record the sale and decrement stock atomically.

    Unknown items and insufficient stock come back as 500 with the message,
    same as any other failure to complete the sale.
    """
    try:
        sale = sale_service.create_sale(db, body, renderer)
    except (NotFoundError, InsufficientStockError) as e:
        logger.warning(f"Sale rejected: {e.message}")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, e.message)

    message = "Sale completed successfully"
    if sale.bill_pdf_url is None:
        message += f". Bill generation failed, retry with POST /api/sales/{sale.id}/bill"
    return {"success": True, "data": sale, "message": message}


@router.delete("/{sale_id}")
def delete_sale(sale_id: int, db: Session = Depends(get_db)):
    sale_service.delete_sale(db, sale_id)
    return {"success": True, "message": "Sale deleted and inventory restored"}


@router.post("/{sale_id}/bill")
def regenerate_bill(sale_id: int, db: Session = Depends(get_db), renderer=Depends(get_renderer)):
    sale = sale_service.regenerate_bill(db, sale_id, renderer)
    return {"success": True, "data": sale, "message": "Bill generated successfully"}
