import logging
import re
from typing import List, Optional

from pymongo import DESCENDING

from database import create_document, db, find_by_id, to_str_id
from schemas import Invoice, InvoiceItem

logger = logging.getLogger(__name__)

INVOICE_PREFIX = "i"
FIRST_INVOICE_NUMBER = 450
_NUMBER_RE = re.compile(r"i(\d+)")


def last_invoice() -> Optional[dict]:
    docs = list(db["invoice"].find().sort("_id", DESCENDING).limit(1))
    return docs[0] if docs else None


def next_invoice_number(order_number: int = 0) -> str:
    last_number = FIRST_INVOICE_NUMBER - 1
    last = last_invoice()
    if last and last.get("invoice_number"):
        match = _NUMBER_RE.search(last["invoice_number"])
        if match:
            last_number = int(match.group(1))
    return f"{INVOICE_PREFIX}{max(last_number + 1, FIRST_INVOICE_NUMBER, order_number)}"


def invoice_items(invoice_id: str) -> List[dict]:
    return [to_str_id(i) for i in db["invoiceitem"].find({"invoice_id": invoice_id})]


def create_invoice(invoice: Invoice, items: List[dict]) -> dict:
    invoice_id = create_document("invoice", invoice)
    for item in items:
        create_document("invoiceitem", InvoiceItem(invoice_id=invoice_id, **item))
    created = to_str_id(find_by_id("invoice", invoice_id))
    created["items"] = invoice_items(invoice_id)
    return created


def invoice_for_order(order_id: str) -> Optional[dict]:
    return to_str_id(db["invoice"].find_one({"order_id": order_id}))


def generate_invoice_from_order(order_id: str, language: str = "hr") -> Optional[str]:
    """Create the invoice for an order, or return the existing one's id.

    Returns None when the order, its user or its items are missing.
    """
    existing = invoice_for_order(order_id)
    if existing:
        return existing["id"]

    order = find_by_id("order", order_id)
    if not order:
        logger.warning("Invoice skipped, order %s not found", order_id)
        return None
    user = find_by_id("user", order["user_id"])
    if not user:
        logger.warning("Invoice skipped, user %s of order %s not found", order["user_id"], order_id)
        return None
    items = list(db["orderitem"].find({"order_id": order_id}))
    if not items:
        logger.warning("Invoice skipped, order %s has no items", order_id)
        return None

    full_name = f"{user.get('first_name') or ''} {user.get('last_name') or ''}".strip()
    invoice = Invoice(
        invoice_number=next_invoice_number(order.get("number", 0)),
        order_id=order_id,
        user_id=order["user_id"],
        customer_name=full_name or user["username"],
        customer_email=user.get("email"),
        customer_address=order.get("shipping_address"),
        customer_city=order.get("shipping_city"),
        customer_postal_code=order.get("shipping_postal_code"),
        customer_country=order.get("shipping_country"),
        customer_phone=user.get("phone"),
        customer_note=order.get("customer_note"),
        payment_method=order["payment_method"],
        total=order["total"],
        subtotal=order.get("subtotal") or 0,
        # small business, no VAT
        tax=0,
        language=language,
    )
    lines = [
        {
            "product_id": item["product_id"],
            "product_name": item.get("product_name") or "Nepoznat proizvod",
            "quantity": item["quantity"],
            "price": item["price"],
            "selected_scent": item.get("scent_name"),
            "selected_color": item.get("color_name"),
        }
        for item in items
    ]
    created = create_invoice(invoice, lines)
    logger.info("Invoice %s generated for order %s", created["invoice_number"], order_id)
    return created["id"]
