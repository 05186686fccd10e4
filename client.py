"""
Client data layer for the storefront API.

Reads are cached by request path. Every write names the path prefixes it
invalidates; cached entries under those prefixes are marked stale and the
next read fetches them again.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

import requests

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


def resource_root(path: str) -> str:
    """"/api/cart/123" -> "/api/cart"."""
    parts = [p for p in path.split("?")[0].split("/") if p]
    if parts and parts[0] == "api":
        parts = parts[:2]
    else:
        parts = parts[:1]
    return "/" + "/".join(parts)


class ShopClient:
    def __init__(self, base_url: str = "", session=None, token: Optional[str] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.token = token
        self._cache: Dict[str, Dict[str, Any]] = {}

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _request(self, method: str, path: str, json: Any = None) -> Any:
        r = self.session.request(method, self.base_url + path, json=json, headers=self._headers())
        if r.status_code >= 400:
            try:
                message = r.json().get("detail") or r.text
            except ValueError:
                message = r.text
            logger.debug("%s %s failed with %s: %s", method, path, r.status_code, message)
            raise ApiError(r.status_code, str(message))
        if r.status_code == 204 or not r.content:
            return None
        return r.json()

    # Cache

    def is_cached(self, path: str) -> bool:
        entry = self._cache.get(path)
        return entry is not None and not entry["stale"]

    def invalidate(self, prefix: str) -> List[str]:
        marked = []
        for key, entry in self._cache.items():
            if key.startswith(prefix):
                entry["stale"] = True
                marked.append(key)
        return marked

    def clear(self) -> None:
        self._cache.clear()

    def get(self, path: str, force: bool = False) -> Any:
        entry = self._cache.get(path)
        if entry and not entry["stale"] and not force:
            return entry["data"]
        data = self._request("GET", path)
        self._cache[path] = {"data": data, "stale": False}
        return data

    def mutate(self, method: str, path: str, json: Any = None, invalidates: Optional[Iterable[str]] = None) -> Any:
        data = self._request(method, path, json)
        for prefix in invalidates if invalidates is not None else [resource_root(path)]:
            self.invalidate(prefix)
        return data

    # Accounts

    def login(self, username: str, password: str) -> dict:
        data = self._request("POST", "/api/login", {"username": username, "password": password})
        self.token = data["token"]
        self.clear()
        return data["user"]

    def logout(self) -> None:
        self._request("POST", "/api/logout")
        self.token = None
        self.clear()

    def me(self) -> dict:
        return self.get("/api/user")

    # Catalog

    def products(self) -> List[dict]:
        return self.get("/api/products")

    def product(self, product_id: str) -> dict:
        return self.get(f"/api/products/{product_id}")

    def create_product(self, product: dict) -> dict:
        return self.mutate("POST", "/api/products", product)

    def update_product(self, product_id: str, product: dict) -> dict:
        return self.mutate("PUT", f"/api/products/{product_id}", product)

    def delete_product(self, product_id: str) -> None:
        self.mutate("DELETE", f"/api/products/{product_id}", invalidates=["/api/products", "/api/categories", "/api/collections"])

    # Cart

    def cart(self) -> List[dict]:
        return self.get("/api/cart")

    def cart_summary(self) -> dict:
        return self.get("/api/cart/summary")

    def add_to_cart(self, product_id: str, quantity: int = 1, **variant) -> dict:
        return self.mutate("POST", "/api/cart", {"product_id": product_id, "quantity": quantity, **variant})

    def update_cart_item(self, item_id: str, quantity: int) -> dict:
        return self.mutate("PUT", f"/api/cart/{item_id}", {"quantity": quantity})

    def remove_cart_item(self, item_id: str) -> None:
        self.mutate("DELETE", f"/api/cart/{item_id}")

    def clear_cart(self) -> None:
        self.mutate("DELETE", "/api/cart")

    # Orders

    def orders(self) -> List[dict]:
        return self.get("/api/orders")

    def place_order(self, checkout: dict) -> dict:
        return self.mutate(
            "POST", "/api/orders", checkout,
            invalidates=["/api/orders", "/api/cart", "/api/products", "/api/invoices", "/api/user/invoices"],
        )

    def update_order_status(self, order_id: str, status: str) -> dict:
        return self.mutate("PUT", f"/api/orders/{order_id}/status", {"status": status})

    # Settings

    def settings(self) -> List[dict]:
        return self.get("/api/settings")

    def setting(self, key: str) -> dict:
        return self.get(f"/api/settings/{key}")

    def shipping_settings(self) -> dict:
        return self.get("/api/settings/shipping")

    def save_shipping_settings(self, free_shipping_threshold: float, standard_shipping_rate: float) -> dict:
        return self.mutate(
            "POST", "/api/settings/shipping",
            {"free_shipping_threshold": free_shipping_threshold, "standard_shipping_rate": standard_shipping_rate},
            invalidates=["/api/settings", "/api/cart/summary"],
        )

    def update_setting(self, key: str, value: str) -> dict:
        return self.mutate("PUT", f"/api/settings/{key}", {"value": value})
