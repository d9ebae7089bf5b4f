from shopdesk.models.item import Item
from shopdesk.models.sale import Sale, SaleItem, PaymentMethod
from shopdesk.models.purchase import PurchaseBill, PurchaseItem

__all__ = ["Item", "Sale", "SaleItem", "PaymentMethod", "PurchaseBill", "PurchaseItem"]
