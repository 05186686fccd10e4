import re

import requests

import content
import mailer


def test_generic_settings(client, admin_headers, user_headers):
    r = client.post("/api/settings", json={"key": "store_open", "value": "true"}, headers=admin_headers)
    assert r.status_code == 201
    assert client.post("/api/settings", json={"key": "store_open", "value": "x"}, headers=admin_headers).status_code == 400
    assert client.post("/api/settings", json={"key": "k", "value": "v"}, headers=user_headers).status_code == 403

    assert client.get("/api/settings/store_open").json()["value"] == "true"
    assert client.put("/api/settings/store_open", json={"value": ""}, headers=admin_headers).status_code == 422
    assert client.put("/api/settings/store_open", json={"value": "false"}, headers=admin_headers).json()["value"] == "false"
    assert client.put("/api/settings/missing", json={"value": "1"}, headers=admin_headers).status_code == 404

    assert client.delete("/api/settings/store_open", headers=admin_headers).status_code == 200
    assert client.get("/api/settings/store_open").status_code == 404


def test_shipping_settings_defaults_and_save(client, admin_headers):
    assert client.get("/api/settings/shipping").json() == {"free_shipping_threshold": 50, "standard_shipping_rate": 5}
    r = client.post(
        "/api/settings/shipping",
        json={"free_shipping_threshold": 80, "standard_shipping_rate": 6.5},
        headers=admin_headers,
    )
    assert r.json() == {"free_shipping_threshold": 80, "standard_shipping_rate": 6.5}
    assert client.get("/api/settings/freeShippingThreshold").json()["value"] == "80.0"


def test_hero_settings_have_five_languages(client, admin_headers):
    hero = client.get("/api/settings/hero").json()
    assert set(hero["title_text"]) == {"de", "hr", "en", "it", "sl"}

    hero["title_text"]["en"] = "Candles for every day"
    client.post("/api/settings/hero", json=hero, headers=admin_headers)
    assert client.get("/api/settings/hero").json()["title_text"]["en"] == "Candles for every day"


def test_contact_settings(client, admin_headers):
    assert client.get("/api/settings/contact").json()["email"] == ""
    body = {
        "address": "Ilica 1",
        "city": "Zagreb",
        "postal_code": "10000",
        "phone": "+385 1 234",
        "email": "info@example.com",
        "working_hours": "9-17",
    }
    client.post("/api/settings/contact", json=body, headers=admin_headers)
    assert client.get("/api/settings/contact").json() == body
    assert client.get("/api/settings/contact_city").json()["value"] == "Zagreb"


def test_pages_upsert(client, admin_headers):
    assert client.get("/api/pages/about").status_code == 404
    first = client.post("/api/pages", json={"type": "about", "title": "O nama", "content": "<p>Bok</p>"}, headers=admin_headers).json()
    second = client.post("/api/pages/about", json={"title": "O nama", "content": "<p>Novo</p>"}, headers=admin_headers).json()
    assert first["id"] == second["id"]
    assert client.get("/api/pages/about").json()["content"] == "<p>Novo</p>"

    r = client.put("/api/pages", json={"id": first["id"], "title": "About", "content": "<p>Hi</p>"}, headers=admin_headers)
    assert r.json()["title"] == "About"


def test_instagram_manual_images(client, admin_headers):
    assert client.get("/api/instagram/manual").json() == []
    images = [{"id": "1", "media_url": "https://example.com/1.jpg", "permalink": "https://instagram.com/p/1", "caption": "Nova"}]
    assert client.post("/api/instagram/manual", json={"images": images}, headers=admin_headers).json() == {"success": True}
    assert client.get("/api/instagram/manual").json() == images

    media = client.get("/api/instagram/media").json()
    assert media["source"] == "manual"
    assert media["data"] == images


def test_instagram_media_falls_back_on_error(client, admin_headers, monkeypatch):
    client.post("/api/instagram/token", json={"token": "abc"}, headers=admin_headers)

    def fail(*args, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(content.requests, "get", fail)
    assert client.get("/api/instagram/media").json() == {"source": "manual", "data": []}


def test_page_visits(client, admin_headers, user_headers):
    for _ in range(3):
        client.post("/api/page-visits", json={"path": "shop"})
    client.post("/api/page-visits", json={"path": "home"})

    assert client.get("/api/page-visits", headers=user_headers).status_code == 403
    visits = client.get("/api/page-visits", headers=admin_headers).json()
    assert [(v["path"], v["count"]) for v in visits] == [("shop", 3), ("home", 1)]
    assert client.get("/api/page-visits/shop", headers=admin_headers).json()["count"] == 3
    assert client.get("/api/page-visits/cart", headers=admin_headers).status_code == 404


def test_subscribe(client, monkeypatch):
    sent = []
    monkeypatch.setattr(mailer, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(mailer, "send_subscription_email", lambda *args: sent.append(args) or (True, None))

    r = client.post("/api/subscribe", json={"email": "kupac@example.com", "language": "hr"})
    assert r.status_code == 200
    code = r.json()["discount_code"]
    assert re.fullmatch(r"WELCOME[A-Z0-9]{5}", code)
    assert sent == [("kupac@example.com", code, "hr")]

    assert client.post("/api/subscribe", json={"email": "kupac@example.com"}).status_code == 400


def test_subscribe_without_mail_config(client):
    r = client.post("/api/subscribe", json={"email": "tiho@example.com"})
    assert r.status_code == 200


def test_company_documents(client, admin_headers, user_headers):
    files = {"file": ("cjenik.pdf", b"%PDF-1.4 fake", "application/pdf")}
    r = client.post("/api/company-documents/upload", files=files, data={"name": "Cjenik"}, headers=admin_headers)
    assert r.status_code == 201
    doc = r.json()
    assert doc["file_type"] == "pdf"
    assert doc["file_size"] == len(b"%PDF-1.4 fake")

    assert client.get("/api/company-documents", headers=user_headers).status_code == 403
    assert len(client.get("/api/company-documents", headers=admin_headers).json()) == 1

    assert client.delete(f"/api/company-documents/{doc['id']}", headers=admin_headers).status_code == 200
    assert client.get("/api/company-documents", headers=admin_headers).json() == []


def test_company_document_type_and_size(client, admin_headers, monkeypatch):
    files = {"file": ("run.exe", b"MZ", "application/octet-stream")}
    r = client.post("/api/company-documents/upload", files=files, data={"name": "X"}, headers=admin_headers)
    assert r.status_code == 400

    monkeypatch.setattr(content, "MAX_DOCUMENT_SIZE", 4)
    files = {"file": ("big.txt", b"0123456789", "text/plain")}
    r = client.post("/api/company-documents/upload", files=files, data={"name": "Big"}, headers=admin_headers)
    assert r.status_code == 400
