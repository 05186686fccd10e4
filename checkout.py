import logging
import math
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field

import invoices
import mailer
import paypal
from auth import admin_user, current_user, is_admin
from database import create_document, db, find_by_id, next_sequence, now_utc, oid, to_str_id
from pricing import cart_subtotal, cart_totals, decode_color_ids, encode_color_ids
from schemas import CartItem as CartItemSchema
from schemas import Invoice as InvoiceSchema
from schemas import Order as OrderSchema
from schemas import OrderItem as OrderItemSchema
from schemas import SelectedColor
from shop_settings import get_shipping_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class AddToCart(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)
    scent_id: Optional[str] = None
    color_id: Optional[str] = None
    color_name: Optional[str] = None
    color_ids: Optional[List[str]] = None
    has_multiple_colors: bool = False


class QuantityUpdate(BaseModel):
    quantity: int = Field(..., ge=1)


class CheckoutRequest(BaseModel):
    payment_method: str = Field(..., min_length=1)
    customer_note: Optional[str] = None
    shipping_address: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_postal_code: Optional[str] = None
    shipping_country: Optional[str] = None
    paypal_order_id: Optional[str] = None
    language: str = "hr"


class StatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)


class ManualInvoiceItem(BaseModel):
    product_id: str
    product_name: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)
    selected_scent: Optional[str] = None
    selected_color: Optional[str] = None


class ManualInvoice(BaseModel):
    invoice_number: Optional[str] = None
    order_id: Optional[str] = None
    user_id: Optional[str] = None
    customer_name: str
    customer_email: Optional[str] = None
    customer_address: Optional[str] = None
    customer_city: Optional[str] = None
    customer_postal_code: Optional[str] = None
    customer_country: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_note: Optional[str] = None
    payment_method: str = "cash"
    total: float
    subtotal: float
    tax: float = 0
    language: str = "hr"


class ManualInvoiceRequest(BaseModel):
    invoice: ManualInvoice
    items: List[ManualInvoiceItem]


class PaypalOrderRequest(BaseModel):
    amount: str
    currency: str = Field(..., min_length=1)
    intent: str = Field(..., min_length=1)


# Cart

def _cart_lines(user_id: str) -> List[dict]:
    lines = []
    for item in db["cartitem"].find({"user_id": user_id}):
        line = to_str_id(item)
        product = find_by_id("product", item["product_id"])
        line["product"] = to_str_id(product) if product else None
        if item.get("scent_id"):
            line["scent"] = to_str_id(find_by_id("scent", item["scent_id"]))
        if item.get("has_multiple_colors") and item.get("color_ids"):
            selected = []
            for color_id in decode_color_ids(item["color_ids"]):
                color = find_by_id("color", color_id)
                selected.append(SelectedColor(
                    id=color_id,
                    name=color["name"] if color else "Nepoznata boja",
                    hex_value=color.get("hex_value") if color else None,
                ).model_dump())
            line["selected_colors"] = selected
        elif item.get("color_id"):
            line["color"] = to_str_id(find_by_id("color", item["color_id"]))
        lines.append(line)
    return lines


def _cart_item_or_404(item_id: str, user: dict) -> dict:
    _id = oid(item_id)
    item = db["cartitem"].find_one({"_id": _id, "user_id": str(user["_id"])}) if _id else None
    if not item:
        raise HTTPException(status_code=404, detail="Cart item not found")
    return item


@router.get("/cart")
def get_cart(user: dict = Depends(current_user)):
    return _cart_lines(str(user["_id"]))


@router.get("/cart/summary")
def cart_summary(user: dict = Depends(current_user)):
    lines = _cart_lines(str(user["_id"]))
    totals = cart_totals(cart_subtotal(lines), get_shipping_settings(), user)
    return {"items": len(lines), **totals.model_dump()}


@router.post("/cart", status_code=201)
def add_to_cart(payload: AddToCart, user: dict = Depends(current_user)):
    product = find_by_id("product", payload.product_id)
    if not product or not product.get("active", True):
        raise HTTPException(status_code=404, detail="Product not found")

    uid = str(user["_id"])
    if payload.has_multiple_colors:
        if not payload.color_ids:
            raise HTTPException(status_code=400, detail="color_ids required for multiple colors")
        color_ids = encode_color_ids(payload.color_ids)
        match = {"has_multiple_colors": True, "color_ids": color_ids}
        doc = CartItemSchema(
            user_id=uid, product_id=payload.product_id, quantity=payload.quantity,
            scent_id=payload.scent_id, color_name=payload.color_name,
            color_ids=color_ids, has_multiple_colors=True,
        )
    else:
        match = {"has_multiple_colors": False, "color_id": payload.color_id}
        doc = CartItemSchema(
            user_id=uid, product_id=payload.product_id, quantity=payload.quantity,
            scent_id=payload.scent_id, color_id=payload.color_id, color_name=payload.color_name,
        )

    existing = db["cartitem"].find_one({
        "user_id": uid,
        "product_id": payload.product_id,
        "scent_id": payload.scent_id,
        **match,
    })
    if existing:
        db["cartitem"].update_one(
            {"_id": existing["_id"]},
            {"$inc": {"quantity": payload.quantity}, "$set": {"updated_at": now_utc()}},
        )
        return to_str_id(find_by_id("cartitem", str(existing["_id"])))
    return to_str_id(find_by_id("cartitem", create_document("cartitem", doc)))


@router.put("/cart/{item_id}")
def update_cart_item(item_id: str, payload: QuantityUpdate, user: dict = Depends(current_user)):
    item = _cart_item_or_404(item_id, user)
    db["cartitem"].update_one({"_id": item["_id"]}, {"$set": {"quantity": payload.quantity, "updated_at": now_utc()}})
    return to_str_id(find_by_id("cartitem", item_id))


@router.delete("/cart/{item_id}", status_code=204)
def remove_cart_item(item_id: str, user: dict = Depends(current_user)):
    _id = oid(item_id)
    if _id is not None:
        db["cartitem"].delete_one({"_id": _id, "user_id": str(user["_id"])})
    return Response(status_code=204)


@router.delete("/cart", status_code=204)
def clear_cart(user: dict = Depends(current_user)):
    db["cartitem"].delete_many({"user_id": str(user["_id"])})
    return Response(status_code=204)


@router.post("/cart/clear")
def clear_cart_post(user: dict = Depends(current_user)):
    db["cartitem"].delete_many({"user_id": str(user["_id"])})
    return {"message": "Cart cleared successfully", "cart": []}


# Orders

def _reserve_stock(lines: List[dict]) -> None:
    """Decrement stock for every line or for none of them."""
    reserved = []
    for line in lines:
        product = line["product"]
        result = db["product"].update_one(
            {"_id": oid(product["id"]), "stock": {"$gte": line["quantity"]}},
            {"$inc": {"stock": -line["quantity"]}},
        )
        if result.modified_count != 1:
            for done in reserved:
                db["product"].update_one({"_id": oid(done["product"]["id"])}, {"$inc": {"stock": done["quantity"]}})
            raise HTTPException(status_code=400, detail=f"Insufficient stock for {product['name']}")
        reserved.append(line)


def _order_or_404(order_id: str, user: dict) -> dict:
    order = find_by_id("order", order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if not is_admin(user) and order["user_id"] != str(user["_id"]):
        raise HTTPException(status_code=403, detail="Unauthorized")
    return order


def _payment_status(payload: CheckoutRequest) -> str:
    if payload.payment_method == "paypal" and payload.paypal_order_id:
        return "completed"
    return "pending"


@router.post("/orders", status_code=201)
def create_order(payload: CheckoutRequest, user: dict = Depends(current_user)):
    uid = str(user["_id"])
    lines = [line for line in _cart_lines(uid) if line.get("product")]
    if not lines:
        raise HTTPException(status_code=400, detail="Cart is empty")

    totals = cart_totals(cart_subtotal(lines), get_shipping_settings(), user)
    _reserve_stock(lines)

    order = OrderSchema(
        number=next_sequence("order"),
        user_id=uid,
        total=totals.total,
        subtotal=totals.subtotal,
        discount_amount=totals.discount_amount,
        shipping_cost=totals.shipping_cost,
        payment_status=_payment_status(payload),
        **payload.model_dump(exclude={"language"}),
    )
    order_id = create_document("order", order)
    items = []
    for line in lines:
        item = OrderItemSchema(
            order_id=order_id,
            product_id=line["product_id"],
            product_name=line["product"]["name"],
            quantity=line["quantity"],
            price=line["product"]["price"],
            scent_id=line.get("scent_id"),
            scent_name=(line.get("scent") or {}).get("name"),
            color_id=line.get("color_id"),
            color_name=line.get("color_name") or (line.get("color") or {}).get("name"),
            color_ids=line.get("color_ids"),
            has_multiple_colors=line.get("has_multiple_colors", False),
        )
        create_document("orderitem", item)
        items.append(item.model_dump())
    db["cartitem"].delete_many({"user_id": uid})

    created = to_str_id(find_by_id("order", order_id))
    logger.info("Order #%s created for user %s, total %.2f", created["number"], uid, created["total"])

    ok, error = mailer.send_new_order_notification(created, items)
    if not ok:
        logger.warning("New order notification for #%s not sent: %s", created["number"], error)
    try:
        created["invoice_id"] = invoices.generate_invoice_from_order(order_id, payload.language)
    except Exception:
        logger.exception("Invoice generation failed for order %s", order_id)
    if created.get("invoice_id"):
        ok, error = mailer.send_invoice_generated_notification(created, created["invoice_id"])
        if not ok:
            logger.warning("Invoice notification for #%s not sent: %s", created["number"], error)
    return created


@router.get("/orders")
def list_orders(user: dict = Depends(current_user)):
    filt = {} if is_admin(user) else {"user_id": str(user["_id"])}
    return [to_str_id(o) for o in db["order"].find(filt).sort("created_at", -1)]


@router.get("/orders/user")
def my_orders(user: dict = Depends(current_user)):
    return [to_str_id(o) for o in db["order"].find({"user_id": str(user["_id"])}).sort("created_at", -1)]


@router.get("/orders/{order_id}")
def get_order(order_id: str, user: dict = Depends(current_user)):
    return to_str_id(_order_or_404(order_id, user))


@router.get("/orders/{order_id}/items")
def order_items(order_id: str, user: dict = Depends(current_user)):
    _order_or_404(order_id, user)
    items = []
    for item in db["orderitem"].find({"order_id": order_id}):
        enhanced = to_str_id(item)
        product = find_by_id("product", item["product_id"])
        enhanced["product"] = to_str_id(product) if product else {
            "id": item["product_id"],
            "name": item.get("product_name") or f"Proizvod #{item['product_id']}",
            "price": item["price"],
            "active": True,
        }
        enhanced["color_id_list"] = decode_color_ids(item.get("color_ids"))
        items.append(enhanced)
    return items


@router.get("/orders/{order_id}/invoice")
def order_invoice(order_id: str, user: dict = Depends(current_user)):
    _order_or_404(order_id, user)
    return invoices.invoice_for_order(order_id)


@router.put("/orders/{order_id}/status")
def update_order_status(order_id: str, payload: StatusUpdate, admin: dict = Depends(admin_user)):
    order = find_by_id("order", order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    db["order"].update_one({"_id": order["_id"]}, {"$set": {"status": payload.status, "updated_at": now_utc()}})
    return to_str_id(find_by_id("order", order_id))


# Invoices

@router.get("/invoices")
def list_invoices(admin: dict = Depends(admin_user)):
    return [to_str_id(i) for i in db["invoice"].find().sort("_id", -1)]


@router.get("/invoices/last")
def get_last_invoice(user: dict = Depends(current_user)):
    last = invoices.last_invoice()
    if is_admin(user) or not last:
        return to_str_id(last)
    return {"invoice_number": last.get("invoice_number")}


@router.get("/invoices/{invoice_id}")
def get_invoice(invoice_id: str, user: dict = Depends(current_user)):
    invoice = find_by_id("invoice", invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    if not is_admin(user) and invoice["user_id"] != str(user["_id"]):
        raise HTTPException(status_code=403, detail="Forbidden")
    result = to_str_id(invoice)
    result["items"] = invoices.invoice_items(invoice_id)
    return result


@router.get("/user/invoices")
def my_invoices(user: dict = Depends(current_user)):
    return [to_str_id(i) for i in db["invoice"].find({"user_id": str(user["_id"])}).sort("_id", -1)]


@router.post("/invoices", status_code=201)
def create_manual_invoice(payload: ManualInvoiceRequest, admin: dict = Depends(admin_user)):
    data = payload.invoice.model_dump()
    data["invoice_number"] = data["invoice_number"] or invoices.next_invoice_number()
    data["user_id"] = data["user_id"] or str(admin["_id"])
    return invoices.create_invoice(InvoiceSchema(**data), [i.model_dump() for i in payload.items])


@router.delete("/invoices/{invoice_id}", status_code=204)
def delete_invoice(invoice_id: str, admin: dict = Depends(admin_user)):
    _id = oid(invoice_id)
    if _id is not None:
        db["invoice"].delete_one({"_id": _id})
        db["invoiceitem"].delete_many({"invoice_id": invoice_id})
    return Response(status_code=204)


# PayPal

@router.get("/paypal/setup")
def paypal_setup():
    return {"client_token": paypal.get_client_token()}


@router.post("/paypal/order")
def paypal_create_order(payload: PaypalOrderRequest, response: Response):
    try:
        amount = float(payload.amount)
    except ValueError:
        amount = 0
    if not math.isfinite(amount) or amount <= 0:
        raise HTTPException(status_code=400, detail="Invalid amount. Amount must be a positive number.")
    status_code, body = paypal.create_order(payload.amount, payload.currency, payload.intent)
    response.status_code = status_code
    return body


@router.post("/paypal/order/{order_id}/capture")
def paypal_capture_order(order_id: str, response: Response):
    try:
        status_code, body = paypal.capture_order(order_id)
    except Exception as e:
        logger.error("PayPal capture of %s failed: %s", order_id, e)
        raise HTTPException(status_code=500, detail="Failed to capture order.")
    response.status_code = status_code
    return body
