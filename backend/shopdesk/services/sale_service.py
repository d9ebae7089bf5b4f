"""
Sale processing: validate a basket against live stock, persist the sale and
its lines, decrement stock, then render the customer bill.

TRANSACTION MODEL:
- Validation, the Sale/SaleItem inserts and every stock decrement share ONE
  transaction. Any failure (unknown item, insufficient stock, storage error)
  rolls all of it back: no partial decrement, no orphan sale row.
- The PDF bill is rendered after commit. If rendering keeps failing the sale
  stays committed with bill_pdf_url NULL; POST /api/sales/{id}/bill retries.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime, time as dt_time, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy import desc, func
from sqlalchemy.orm import Session, selectinload

from shopdesk.core.config import settings
from shopdesk.core.exceptions import InsufficientStockError, NotFoundError, StorageError
from shopdesk.models.item import Item
from shopdesk.models.sale import Sale, SaleItem
from shopdesk.schemas.sale import SaleBillRecord, SaleCreate, SaleLineRecord, SaleRecord
from shopdesk.services import inventory_service

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
SUMMARY_PERIODS = ("today", "week", "month", "year", "all")


def to_money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class ValidatedLine:
    """A basket line after stock validation, priced from the item record."""
    item_id: int
    item_name: str
    category: Optional[str]
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    def as_bill_line(self) -> dict:
        return {
            "item_name": self.item_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
        }


def validate_basket(db: Session, data: SaleCreate) -> List[ValidatedLine]:
    """
    Check every requested line against current stock, in client order.

    The first failing line aborts the whole basket. unit_price always comes
    from the item row, never from the client.
    """
    validated = []
    for requested in data.items:
        item = inventory_service.get_item(db, requested.item_id, lock=True)
        if item.quantity < requested.quantity:
            raise InsufficientStockError(item.name, item.quantity, requested.quantity)

        unit_price = to_money(item.unit_price)
        validated.append(ValidatedLine(
            item_id=item.id,
            item_name=item.name,
            category=item.category,
            quantity=requested.quantity,
            unit_price=unit_price,
            total_price=to_money(unit_price * requested.quantity),
        ))
    return validated


def _record_sale(db: Session, data: SaleCreate) -> tuple[Sale, List[ValidatedLine]]:
    lines = validate_basket(db, data)
    total_amount = sum((line.total_price for line in lines), Decimal("0.00"))

    sale = Sale(
        total_amount=to_money(total_amount),
        customer_name=data.customer_name,
        customer_phone=data.customer_phone,
        payment_method=data.payment_method.value,
    )
    db.add(sale)
    db.flush()  # Get ID without committing

    for line in lines:
        db.add(SaleItem(
            sale_id=sale.id,
            item_id=line.item_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
            total_price=line.total_price,
        ))
        # Guarded UPDATE: a concurrent sale that took the stock first makes this raise
        inventory_service.decrement_stock(db, line.item_id, line.quantity)

    db.flush()
    return sale, lines


def create_sale(db: Session, data: SaleCreate, renderer=None) -> SaleRecord:
    """
    Create a sale atomically, then attach the customer bill.

    Raises:
        NotFoundError: a requested item does not exist
        InsufficientStockError: a line asks for more than is on hand
    """
    try:
        sale, lines = _record_sale(db, data)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Sale {sale.id} committed: {len(lines)} line(s), total {sale.total_amount}, "
        f"payment {sale.payment_method}"
    )

    if renderer is not None:
        attach_bill(db, sale, [line.as_bill_line() for line in lines], renderer)

    return get_sale(db, sale.id)


def attach_bill(
    db: Session,
    sale: Sale,
    lines: List[dict],
    renderer,
    retries: Optional[int] = None,
    backoff: Optional[float] = None,
) -> Optional[str]:
    """
    Render and store the customer bill for a committed sale.

    Best-effort: retried with exponential backoff, and on final failure the
    sale is left as is with bill_pdf_url NULL. Never raises.
    """
    retries = settings.BILL_RENDER_RETRIES if retries is None else retries
    backoff = settings.BILL_RENDER_BACKOFF_SECONDS if backoff is None else backoff

    for attempt in range(retries + 1):
        try:
            url = renderer.render_customer_bill(sale, lines)
            sale.bill_pdf_url = url
            db.commit()
            logger.info(f"Bill for sale {sale.id} stored at {url}")
            return url
        except Exception as e:
            db.rollback()
            if attempt < retries:
                wait_time = backoff * (2 ** attempt)
                logger.warning(
                    f"Bill rendering for sale {sale.id} failed ({e}), "
                    f"retry {attempt+1}/{retries} after {wait_time}s"
                )
                time.sleep(wait_time)
            else:
                logger.error(
                    f"Bill rendering for sale {sale.id} failed after {retries + 1} attempt(s): {e}. "
                    f"Sale kept without bill",
                    exc_info=True,
                )
    return None


def regenerate_bill(db: Session, sale_id: int, renderer) -> SaleRecord:
    """Render the bill again for an existing sale (e.g. after a failed first attempt)."""
    sale = _load_sale(db, sale_id)
    lines = [
        {
            "item_name": line.item.name if line.item else f"Item #{line.item_id}",
            "quantity": line.quantity,
            "unit_price": line.unit_price,
            "total_price": line.total_price,
        }
        for line in sale.items
    ]
    if attach_bill(db, sale, lines, renderer) is None:
        raise StorageError("Bill generation failed. Please try again later.")
    return get_sale(db, sale_id)


def delete_sale(db: Session, sale_id: int) -> None:
    """
    Reverse a sale: restore stock for every line, then delete the sale
    (its lines go with it). All in one transaction.
    """
    try:
        sale = (
            db.query(Sale)
            .options(selectinload(Sale.items))
            .filter(Sale.id == sale_id)
            .with_for_update()
            .first()
        )
        if not sale:
            raise NotFoundError("Sale not found")

        for line in sale.items:
            inventory_service.increment_stock(db, line.item_id, line.quantity)

        restored = len(sale.items)
        db.delete(sale)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Sale {sale_id} deleted, stock restored for {restored} line(s)")


# ==============================================================================
# READ SIDE
# ==============================================================================

def _load_sale(db: Session, sale_id: int) -> Sale:
    sale = (
        db.query(Sale)
        .options(selectinload(Sale.items).selectinload(SaleItem.item))
        .filter(Sale.id == sale_id)
        .first()
    )
    if not sale:
        raise NotFoundError("Sale not found")
    return sale


def to_record(sale: Sale) -> SaleRecord:
    lines = [
        SaleLineRecord(
            id=line.id,
            item_id=line.item_id,
            item_name=line.item.name if line.item else None,
            category=line.item.category if line.item else None,
            quantity=line.quantity,
            unit_price=line.unit_price,
            total_price=line.total_price,
        )
        for line in sale.items
    ]
    return SaleRecord(
        id=sale.id,
        total_amount=sale.total_amount,
        customer_name=sale.customer_name,
        customer_phone=sale.customer_phone,
        payment_method=sale.payment_method,
        bill_pdf_url=sale.bill_pdf_url,
        created_at=sale.created_at,
        item_count=len(lines),
        items=lines,
    )


def get_sale(db: Session, sale_id: int) -> SaleRecord:
    # Drop cached state so totals and stock reflect the committed rows
    db.expire_all()
    return to_record(_load_sale(db, sale_id))


def list_sales(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[SaleRecord]:
    q = db.query(Sale).options(selectinload(Sale.items).selectinload(SaleItem.item))
    if start_date:
        q = q.filter(Sale.created_at >= start_date)
    if end_date:
        q = q.filter(Sale.created_at <= end_date)
    sales = q.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).offset(offset).all()
    return [to_record(sale) for sale in sales]


def list_sale_bills(db: Session, limit: int = 50, offset: int = 0) -> List[SaleBillRecord]:
    sales = db.query(Sale).order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).offset(offset).all()
    return [SaleBillRecord.model_validate(sale) for sale in sales]


def period_start(period: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Start of the reporting window in UTC, or None for all time."""
    now = now or datetime.now(timezone.utc)
    today = datetime.combine(now.date(), dt_time.min)
    if period == "today":
        return today
    if period == "week":
        return today - timedelta(days=today.weekday())
    if period == "month":
        return today.replace(day=1)
    if period == "year":
        return today.replace(month=1, day=1)
    return None


def sales_summary(db: Session, period: str = "today") -> dict:
    """Totals, top sellers and the last 7 days of daily revenue."""
    start = period_start(period)

    summary_q = db.query(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total_amount), 0),
        func.coalesce(func.avg(Sale.total_amount), 0),
    )
    if start is not None:
        summary_q = summary_q.filter(Sale.created_at >= start)
    total_sales, total_revenue, average_sale = summary_q.one()

    total_sold = func.sum(SaleItem.quantity).label("total_sold")
    top_q = (
        db.query(
            Item.name,
            Item.category,
            total_sold,
            func.sum(SaleItem.total_price).label("total_revenue"),
        )
        .join(SaleItem, SaleItem.item_id == Item.id)
        .join(Sale, SaleItem.sale_id == Sale.id)
    )
    if start is not None:
        top_q = top_q.filter(Sale.created_at >= start)
    top_items = top_q.group_by(Item.id, Item.name, Item.category).order_by(desc(total_sold)).limit(10).all()

    week_ago = datetime.combine(datetime.now(timezone.utc).date() - timedelta(days=7), dt_time.min)
    sale_date = func.date(Sale.created_at).label("sale_date")
    daily = (
        db.query(sale_date, func.count(Sale.id), func.sum(Sale.total_amount))
        .filter(Sale.created_at >= week_ago)
        .group_by(sale_date)
        .order_by(sale_date.desc())
        .all()
    )

    return {
        "summary": {
            "total_sales": total_sales,
            "total_revenue": to_money(total_revenue),
            "average_sale": to_money(average_sale),
        },
        "topItems": [
            {
                "name": name,
                "category": category,
                "total_sold": int(sold or 0),
                "total_revenue": to_money(revenue or 0),
            }
            for name, category, sold, revenue in top_items
        ],
        "dailySales": [
            {"sale_date": str(day), "sales_count": count, "daily_revenue": to_money(revenue or 0)}
            for day, count, revenue in daily
        ],
        "period": period,
    }
