"""Dashboard overview, charts and reports."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shopdesk.api.deps import get_db, get_renderer
from shopdesk.services import report_service

router = APIRouter()


@router.get("/overview")
def overview(db: Session = Depends(get_db)):
    return {"success": True, "data": report_service.dashboard_overview(db)}


@router.get("/charts/sales")
def sales_chart(
    period: str = Query("week", pattern="^(week|month|year)$"),
    db: Session = Depends(get_db),
):
    return {"success": True, "data": report_service.sales_chart(db, period)}


@router.get("/charts/top-items")
def top_items(
    period: str = Query("month", pattern="^(week|month|year|all)$"),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return {"success": True, "data": report_service.top_items(db, period, limit)}


@router.get("/reports/inventory")
def inventory_report(
    format: str = Query("json", pattern="^(json|pdf)$"),
    db: Session = Depends(get_db),
    renderer=Depends(get_renderer),
):
    """JSON stock listing, or format=pdf to render and store a PDF report."""
    if format == "pdf":
        return {
            "success": True,
            "data": report_service.render_inventory_report(db, renderer),
            "message": "Inventory report generated successfully",
        }
    report = report_service.inventory_report(db)
    return {"success": True, "data": report["items"], "summary": report["summary"]}


@router.get("/reports/sales")
def sales_report(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    report = report_service.sales_report(db, start_date, end_date)
    return {"success": True, "data": report["sales"], "summary": report["summary"]}
