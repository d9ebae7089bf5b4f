"""Dashboard overview, charts, and the inventory and sales reports."""
import logging
from datetime import datetime, time as dt_time, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import case, desc, func
from sqlalchemy.orm import Session, selectinload

from shopdesk.models.item import Item
from shopdesk.models.purchase import PurchaseBill
from shopdesk.models.sale import Sale, SaleItem
from shopdesk.services.sale_service import period_start, to_money

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 10

# Chart windows in days, counted back from the start of today (UTC)
CHART_WINDOWS = {"week": 7, "month": 30, "year": 365}


def _stock_status(item: Item) -> str:
    threshold = item.low_stock_threshold or 0
    if item.quantity <= threshold:
        return "Low Stock"
    if item.quantity <= threshold * 2:
        return "Medium Stock"
    return "Good Stock"


def _sales_since(db: Session, start: datetime) -> dict:
    count, revenue = (
        db.query(func.count(Sale.id), func.coalesce(func.sum(Sale.total_amount), 0))
        .filter(Sale.created_at >= start)
        .one()
    )
    return {"count": count, "revenue": to_money(revenue)}


def _recent_activities(db: Session) -> List[dict]:
    sales = db.query(Sale).order_by(Sale.created_at.desc(), Sale.id.desc()).limit(5).all()
    purchases = (
        db.query(PurchaseBill)
        .order_by(PurchaseBill.created_at.desc(), PurchaseBill.id.desc())
        .limit(5)
        .all()
    )
    activities = [
        {
            "type": "sale",
            "id": s.id,
            "amount": to_money(s.total_amount),
            "description": s.customer_name,
            "created_at": s.created_at,
        }
        for s in sales
    ] + [
        {
            "type": "purchase",
            "id": p.id,
            "amount": to_money(p.total_amount or 0),
            "description": p.vendor_name,
            "created_at": p.created_at,
        }
        for p in purchases
    ]
    activities.sort(key=lambda a: a["created_at"] or datetime.min, reverse=True)
    return activities[:RECENT_ACTIVITY_LIMIT]


def dashboard_overview(db: Session) -> dict:
    total_items, total_stock, stock_value, low_stock = db.query(
        func.count(Item.id),
        func.coalesce(func.sum(Item.quantity), 0),
        func.coalesce(func.sum(Item.quantity * Item.unit_price), 0),
        func.coalesce(func.sum(case((Item.quantity <= Item.low_stock_threshold, 1), else_=0)), 0),
    ).one()

    today = datetime.combine(datetime.now(timezone.utc).date(), dt_time.min)
    return {
        "inventory": {
            "total_items": total_items,
            "total_stock": int(total_stock),
            "stock_value": to_money(stock_value),
            "low_stock_items": int(low_stock),
        },
        "sales": {
            "today": _sales_since(db, today),
            "month": _sales_since(db, period_start("month")),
        },
        "recentActivities": _recent_activities(db),
    }


def inventory_report(db: Session) -> dict:
    """Every item with its stock value and status, plus totals."""
    items = db.query(Item).order_by(Item.name.asc()).all()
    rows = []
    total_value = Decimal("0.00")
    for item in items:
        value = to_money(Decimal(item.unit_price or 0) * item.quantity)
        total_value += value
        rows.append({
            "id": item.id,
            "name": item.name,
            "category": item.category,
            "quantity": item.quantity,
            "unit_price": item.unit_price,
            "cost_price": item.cost_price,
            "stock_value": value,
            "low_stock_threshold": item.low_stock_threshold,
            "stock_status": _stock_status(item),
        })
    return {
        "items": rows,
        "summary": {
            "totalItems": len(rows),
            "totalValue": total_value,
            "lowStockItems": sum(1 for r in rows if r["stock_status"] == "Low Stock"),
        },
    }


def render_inventory_report(db: Session, renderer) -> dict:
    """
    Render the inventory PDF and store it.

    Raises:
        StorageError: the rendered report could not be stored
    """
    items = db.query(Item).order_by(Item.name.asc()).all()
    url = renderer.render_inventory_report(items)
    logger.info(f"Inventory report for {len(items)} item(s) stored at {url}")
    return {"reportUrl": url, "itemCount": len(items)}


# ==============================================================================
# CHARTS
# ==============================================================================

def _window_start(period: str) -> datetime:
    today = datetime.combine(datetime.now(timezone.utc).date(), dt_time.min)
    return today - timedelta(days=CHART_WINDOWS[period])


def sales_chart(db: Session, period: str = "week") -> List[dict]:
    """
    Sale count and revenue per day, oldest first.
    The year view is bucketed per month ("YYYY-MM") instead.
    """
    rows = (
        db.query(Sale.created_at, Sale.total_amount)
        .filter(Sale.created_at >= _window_start(period))
        .order_by(Sale.created_at.asc(), Sale.id.asc())
        .all()
    )
    buckets = {}
    for created_at, amount in rows:
        key = created_at.strftime("%Y-%m") if period == "year" else created_at.date().isoformat()
        bucket = buckets.setdefault(key, {"date": key, "sales": 0, "revenue": Decimal("0.00")})
        bucket["sales"] += 1
        bucket["revenue"] += to_money(amount)
    return list(buckets.values())


def top_items(db: Session, period: str = "month", limit: int = 10) -> List[dict]:
    sold = func.sum(SaleItem.quantity).label("sold")
    q = (
        db.query(
            Item.name,
            Item.category,
            sold,
            func.sum(SaleItem.total_price),
            func.count(Sale.id.distinct()),
        )
        .join(SaleItem, SaleItem.item_id == Item.id)
        .join(Sale, SaleItem.sale_id == Sale.id)
    )
    if period in CHART_WINDOWS:
        q = q.filter(Sale.created_at >= _window_start(period))
    rows = q.group_by(Item.id, Item.name, Item.category).order_by(desc(sold), Item.name.asc()).limit(limit).all()
    return [
        {
            "name": name,
            "category": category,
            "sold": int(quantity or 0),
            "revenue": to_money(revenue or 0),
            "orders": orders,
        }
        for name, category, quantity, revenue, orders in rows
    ]


# ==============================================================================
# SALES REPORT
# ==============================================================================

def sales_report(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> dict:
    """Every sale in the window with a one-line item summary, plus totals."""
    q = db.query(Sale).options(selectinload(Sale.items).selectinload(SaleItem.item))
    if start_date:
        q = q.filter(Sale.created_at >= start_date)
    if end_date:
        q = q.filter(Sale.created_at <= end_date)
    sales = q.order_by(Sale.created_at.desc(), Sale.id.desc()).all()

    rows = []
    total_revenue = Decimal("0.00")
    for sale in sales:
        amount = to_money(sale.total_amount)
        total_revenue += amount
        rows.append({
            "id": sale.id,
            "customer_name": sale.customer_name,
            "customer_phone": sale.customer_phone,
            "total_amount": amount,
            "payment_method": sale.payment_method,
            "created_at": sale.created_at,
            "item_count": len(sale.items),
            "items_summary": ", ".join(
                f"{line.item.name if line.item else line.item_id} (x{line.quantity})" for line in sale.items
            ),
        })

    average = to_money(total_revenue / len(rows)) if rows else Decimal("0.00")
    return {
        "sales": rows,
        "summary": {
            "totalSales": len(rows),
            "totalRevenue": total_revenue,
            "averageSale": average,
            "period": {"startDate": start_date, "endDate": end_date},
        },
    }
