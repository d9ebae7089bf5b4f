"""
Inventory read/update.

Stock changes made by sales and bill ingestion go through decrement_stock and
increment_stock, single conditional UPDATE statements, so quantity can never be
driven below zero even when two requests race for the last unit.
"""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shopdesk.core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from shopdesk.models.item import Item
from shopdesk.schemas.item import ItemCreate, ItemUpdate

logger = logging.getLogger(__name__)


def normalize_name(name: str) -> str:
    return " ".join((name or "").split())


def get_item(db: Session, item_id: int, lock: bool = False) -> Item:
    """
    Load one item or raise NotFoundError.

    lock=True takes a row lock (SELECT ... FOR UPDATE) for the rest of the
    transaction; SQLite ignores it and serializes writers instead.
    """
    q = db.query(Item).filter(Item.id == item_id)
    if lock:
        q = q.with_for_update()
    item = q.first()
    if not item:
        raise NotFoundError(f"Item with ID {item_id} not found")
    return item


def find_by_name(db: Session, name: str) -> Optional[Item]:
    """
    Matching rule for ingestion: case-insensitive exact match on the
    whitespace-normalized name. Oldest item wins if duplicates exist.
    Both sides go through the database lower() so they fold the same way.
    """
    clean = normalize_name(name)
    if not clean:
        return None
    return (
        db.query(Item)
        .filter(func.lower(Item.name) == func.lower(clean))
        .order_by(Item.id.asc())
        .first()
    )


def list_items(
    db: Session,
    category: Optional[str] = None,
    search: Optional[str] = None,
    low_stock: bool = False,
) -> List[Item]:
    q = db.query(Item)
    if category:
        q = q.filter(Item.category == category)
    if search:
        q = q.filter(Item.name.ilike(f"%{search}%"))
    if low_stock:
        q = q.filter(Item.quantity <= Item.low_stock_threshold)
    return q.order_by(Item.name.asc()).all()


def list_categories(db: Session) -> List[str]:
    rows = (
        db.query(Item.category)
        .filter(Item.category.isnot(None), Item.category != "")
        .distinct()
        .order_by(Item.category)
        .all()
    )
    return [row[0] for row in rows]


def low_stock_items(db: Session) -> List[Item]:
    return (
        db.query(Item)
        .filter(Item.quantity <= Item.low_stock_threshold)
        .order_by(Item.quantity.asc())
        .all()
    )


def create_item(db: Session, data: ItemCreate) -> Item:
    item = Item(**data.model_dump())
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info(f"Item {item.id} '{item.name}' added with quantity {item.quantity}")
    return item


def update_item(db: Session, item_id: int, data: ItemUpdate) -> Item:
    item = get_item(db, item_id)
    for field, value in data.model_dump().items():
        setattr(item, field, value)
    db.commit()
    db.refresh(item)
    return item


def delete_item(db: Session, item_id: int) -> Item:
    """Items referenced by sale or purchase history cannot be deleted."""
    item = get_item(db, item_id)
    item_name = item.name
    db.delete(item)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.info(f"Refused to delete item {item_id}: referenced by history ({e.orig})")
        raise ValidationError(f"Item '{item_name}' has sale or purchase history and cannot be deleted") from e
    return item


def decrement_stock(db: Session, item_id: int, quantity: int) -> None:
    """
    Take `quantity` units out of stock inside the caller's transaction.

    UPDATE items SET quantity = quantity - :n WHERE id = :id AND quantity >= :n
    An affected row count of zero means another transaction got there first
    (or the item vanished); the caller's transaction must then roll back.
    """
    result = db.execute(
        update(Item)
        .where(Item.id == item_id, Item.quantity >= quantity)
        .values(quantity=Item.quantity - quantity, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    current = db.query(Item.name, Item.quantity).filter(Item.id == item_id).first()
    if current is None:
        raise NotFoundError(f"Item with ID {item_id} not found")
    raise InsufficientStockError(current.name, current.quantity, quantity)


def increment_stock(db: Session, item_id: int, quantity: int, cost_price: Optional[Decimal] = None) -> None:
    """Put `quantity` units back (sale reversal) or add purchased units."""
    values = {"quantity": Item.quantity + quantity, "updated_at": func.now()}
    if cost_price is not None:
        values["cost_price"] = cost_price
    result = db.execute(
        update(Item)
        .where(Item.id == item_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError(f"Item with ID {item_id} not found")
