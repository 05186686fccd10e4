"""
Cart pricing rules: shipping tiers, per-user flat discounts and the JSON
encoding used for multi-color cart lines.
"""
import json
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from pydantic import BaseModel

from database import as_utc
from schemas import ShippingSettings


class CartTotals(BaseModel):
    subtotal: float
    shipping_cost: float
    discount_amount: float
    total: float
    free_shipping: bool
    remaining_for_free_shipping: float


def money(value: float) -> float:
    return round(float(value), 2)


def is_free_shipping(subtotal: float, settings: ShippingSettings) -> bool:
    if settings.standard_shipping_rate == 0:
        return True
    threshold = settings.free_shipping_threshold
    return threshold > 0 and subtotal >= threshold


def shipping_cost(subtotal: float, settings: ShippingSettings) -> float:
    if is_free_shipping(subtotal, settings):
        return 0.0
    return money(settings.standard_shipping_rate)


def remaining_for_free_shipping(subtotal: float, settings: ShippingSettings) -> float:
    if is_free_shipping(subtotal, settings) or settings.free_shipping_threshold <= 0:
        return 0.0
    return money(settings.free_shipping_threshold - subtotal)


def user_discount(user: Optional[dict], subtotal: float, now: Optional[datetime] = None) -> float:
    """Flat discount the user is entitled to for this subtotal, or 0."""
    if not user:
        return 0.0
    amount = float(user.get("discount_amount") or 0)
    expiry = as_utc(user.get("discount_expiry_date"))
    if amount <= 0 or expiry is None:
        return 0.0
    now = now or datetime.now(timezone.utc)
    if now >= expiry:
        return 0.0
    if subtotal < float(user.get("discount_minimum_order") or 0):
        return 0.0
    return money(amount)


def order_total(subtotal: float, shipping: float, discount: float) -> float:
    return money(max(0.0, subtotal + shipping - discount))


def cart_subtotal(lines: Iterable[dict]) -> float:
    """Sum of price * quantity over cart lines that still carry a product."""
    total = 0.0
    for line in lines:
        product = line.get("product")
        if not product:
            continue
        total += float(product.get("price", 0)) * int(line.get("quantity", 1))
    return money(total)


def cart_totals(subtotal: float, settings: ShippingSettings, user: Optional[dict] = None,
                now: Optional[datetime] = None) -> CartTotals:
    shipping = shipping_cost(subtotal, settings)
    discount = user_discount(user, subtotal, now)
    return CartTotals(
        subtotal=money(subtotal),
        shipping_cost=shipping,
        discount_amount=discount,
        total=order_total(subtotal, shipping, discount),
        free_shipping=shipping == 0,
        remaining_for_free_shipping=remaining_for_free_shipping(subtotal, settings),
    )


def encode_color_ids(color_ids: Optional[Iterable[str]]) -> Optional[str]:
    if color_ids is None:
        return None
    return json.dumps([str(c) for c in color_ids])


def decode_color_ids(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except ValueError:
        return []
    if not isinstance(value, list):
        return []
    return [str(v) for v in value]
