"""Seed a development database with a small general-store inventory."""
from decimal import Decimal

from shopdesk.db.init_db import init_db
from shopdesk.db.session import SessionLocal
from shopdesk.models.item import Item


def seed_inventory():
    init_db()
    db = SessionLocal()

    if db.query(Item).count():
        print("Inventory already has items, nothing to seed")
        db.close()
        return

    items = [
        {"name": "Basmati Rice 5kg", "category": "Groceries", "price": "520.00", "cost": "455.00", "units": 40},
        {"name": "Toor Dal 1kg", "category": "Groceries", "price": "165.00", "cost": "142.00", "units": 60},
        {"name": "Sunflower Oil 1L", "category": "Groceries", "price": "148.00", "cost": "130.00", "units": 35},
        {"name": "Sugar 1kg", "category": "Groceries", "price": "48.00", "cost": "41.00", "units": 80},
        {"name": "Tea Powder 250g", "category": "Beverages", "price": "135.00", "cost": "112.00", "units": 25},
        {"name": "Instant Coffee 100g", "category": "Beverages", "price": "210.00", "cost": "182.00", "units": 8},
        {"name": "Bath Soap", "category": "Personal Care", "price": "38.00", "cost": "30.00", "units": 120},
        {"name": "Toothpaste 150g", "category": "Personal Care", "price": "95.00", "cost": "78.00", "units": 45},
        {"name": "Detergent Powder 1kg", "category": "Household", "price": "120.00", "cost": "101.00", "units": 5},
        {"name": "AA Batteries (4 pack)", "category": "Household", "price": "80.00", "cost": "62.00", "units": 30},
    ]

    for entry in items:
        db.add(Item(
            name=entry["name"],
            category=entry["category"],
            quantity=entry["units"],
            unit_price=Decimal(entry["price"]),
            cost_price=Decimal(entry["cost"]),
        ))

    db.commit()
    print(f"Seeded {len(items)} items")
    db.close()


if __name__ == "__main__":
    seed_inventory()
