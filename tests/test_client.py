import pytest

from client import ApiError, ShopClient, resource_root


class CountingSession:
    """Wraps the test client and counts GET requests per path."""

    def __init__(self, client):
        self.client = client
        self.gets = {}

    def request(self, method, url, json=None, headers=None):
        if method == "GET":
            self.gets[url] = self.gets.get(url, 0) + 1
        return self.client.request(method, url, json=json, headers=headers)


@pytest.fixture
def session(client):
    return CountingSession(client)


def test_resource_root():
    assert resource_root("/api/cart/123") == "/api/cart"
    assert resource_root("/api/products?q=x") == "/api/products"
    assert resource_root("/test") == "/test"


def test_get_is_cached(session, make_product):
    make_product()
    shop = ShopClient(session=session)
    assert len(shop.products()) == 1
    assert len(shop.products()) == 1
    assert session.gets["/api/products"] == 1


def test_mutation_invalidates_resource(session, user_id, make_product):
    product = make_product()
    shop = ShopClient(session=session)
    shop.login("ana", "secret123")

    assert shop.cart() == []
    shop.add_to_cart(product["id"], 2)
    assert not shop.is_cached("/api/cart")
    assert shop.cart()[0]["quantity"] == 2
    assert session.gets["/api/cart"] == 2


def test_place_order_invalidates_products_and_cart(session, user_id, make_product):
    product = make_product(stock=4)
    shop = ShopClient(session=session)
    shop.login("ana", "secret123")

    assert shop.product(product["id"])["stock"] == 4
    shop.add_to_cart(product["id"], 1)
    shop.cart_summary()
    shop.place_order({"payment_method": "bank_transfer"})

    assert not shop.is_cached(f"/api/products/{product['id']}")
    assert not shop.is_cached("/api/cart/summary")
    assert shop.product(product["id"])["stock"] == 3
    assert shop.cart() == []


def test_invalidate_by_prefix(session, make_product):
    make_product()
    shop = ShopClient(session=session)
    shop.products()
    shop.get("/api/settings/shipping")
    assert shop.invalidate("/api/products") == ["/api/products"]
    assert shop.is_cached("/api/settings/shipping")


def test_api_error_carries_detail(session):
    shop = ShopClient(session=session)
    with pytest.raises(ApiError) as err:
        shop.me()
    assert err.value.status_code == 401
    assert err.value.message == "Unauthorized"


def test_admin_shipping_settings(session, admin_id):
    shop = ShopClient(session=session)
    shop.login("admin", "secret123")
    assert shop.shipping_settings()["standard_shipping_rate"] == 5
    shop.save_shipping_settings(40, 4)
    assert shop.shipping_settings() == {"free_shipping_threshold": 40, "standard_shipping_rate": 4}
