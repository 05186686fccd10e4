from datetime import datetime, timedelta, timezone

from pricing import (
    cart_subtotal,
    cart_totals,
    decode_color_ids,
    encode_color_ids,
    order_total,
    remaining_for_free_shipping,
    shipping_cost,
    user_discount,
)
from schemas import ShippingSettings

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_shipping_charged_below_threshold():
    settings = ShippingSettings(free_shipping_threshold=50, standard_shipping_rate=5)
    assert shipping_cost(49.99, settings) == 5
    assert remaining_for_free_shipping(49.99, settings) == 0.01


def test_shipping_free_at_threshold():
    settings = ShippingSettings(free_shipping_threshold=50, standard_shipping_rate=5)
    assert shipping_cost(50, settings) == 0
    assert remaining_for_free_shipping(60, settings) == 0


def test_shipping_free_when_rate_is_zero():
    settings = ShippingSettings(free_shipping_threshold=100, standard_shipping_rate=0)
    assert shipping_cost(1, settings) == 0


def test_zero_threshold_never_free():
    settings = ShippingSettings(free_shipping_threshold=0, standard_shipping_rate=4.5)
    assert shipping_cost(1000, settings) == 4.5
    assert remaining_for_free_shipping(1000, settings) == 0


def test_discount_applies_before_expiry():
    user = {"discount_amount": 10, "discount_minimum_order": 30, "discount_expiry_date": NOW + timedelta(days=1)}
    assert user_discount(user, 30, now=NOW) == 10


def test_discount_needs_minimum_order():
    user = {"discount_amount": 10, "discount_minimum_order": 30, "discount_expiry_date": NOW + timedelta(days=1)}
    assert user_discount(user, 29.99, now=NOW) == 0


def test_discount_expired():
    user = {"discount_amount": 10, "discount_minimum_order": 0, "discount_expiry_date": NOW}
    assert user_discount(user, 100, now=NOW) == 0


def test_discount_without_expiry_is_ignored():
    assert user_discount({"discount_amount": 10}, 100, now=NOW) == 0
    assert user_discount(None, 100, now=NOW) == 0


def test_naive_expiry_is_read_as_utc():
    user = {"discount_amount": 5, "discount_expiry_date": datetime(2024, 5, 2)}
    assert user_discount(user, 10, now=NOW) == 5


def test_order_total_never_negative():
    assert order_total(5, 0, 20) == 0
    assert order_total(10, 5, 2.5) == 12.5


def test_cart_subtotal_skips_missing_products():
    lines = [
        {"product": {"price": 25.99}, "quantity": 2},
        {"product": None, "quantity": 3},
        {"product": {"price": 3.5}, "quantity": 1},
    ]
    assert cart_subtotal(lines) == 55.48


def test_cart_totals():
    user = {"discount_amount": 5, "discount_minimum_order": 20, "discount_expiry_date": NOW + timedelta(hours=1)}
    totals = cart_totals(40, ShippingSettings(), user, now=NOW)
    assert totals.shipping_cost == 5
    assert totals.discount_amount == 5
    assert totals.total == 40
    assert totals.remaining_for_free_shipping == 10
    assert not totals.free_shipping


def test_color_ids_round_trip():
    ids = ["65f0c0ffee0000000000000a", "65f0c0ffee0000000000000b"]
    assert decode_color_ids(encode_color_ids(ids)) == ids


def test_decode_color_ids_garbage():
    assert decode_color_ids(None) == []
    assert decode_color_ids("not json") == []
    assert decode_color_ids('{"a": 1}') == []
