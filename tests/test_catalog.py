def test_product_crud(client, admin_headers, make_product):
    product = make_product()
    assert product["active"] is True
    assert product["stock"] == 10

    r = client.patch(f"/api/products/{product['id']}", json={"price": 19.99}, headers=admin_headers)
    assert r.json()["price"] == 19.99
    assert r.json()["name"] == "Vanilla Dreams"

    assert client.delete(f"/api/products/{product['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/products/{product['id']}").status_code == 404


def test_product_writes_need_admin(client, user_headers):
    body = {"name": "X", "description": "x", "price": 1}
    assert client.post("/api/products", json=body).status_code == 401
    assert client.post("/api/products", json=body, headers=user_headers).status_code == 403


def test_negative_price_rejected(client, admin_headers):
    body = {"name": "X", "description": "x", "price": -1}
    assert client.post("/api/products", json=body, headers=admin_headers).status_code == 422


def test_unknown_and_malformed_ids(client):
    assert client.get("/api/products/000000000000000000000000").status_code == 404
    assert client.get("/api/products/not-an-id").status_code == 404


def test_inactive_products_hidden_from_customers(client, admin_headers, make_product):
    make_product("Visible")
    hidden = make_product("Hidden", active=False)
    assert [p["name"] for p in client.get("/api/products").json()] == ["Visible"]
    assert len(client.get("/api/products", headers=admin_headers).json()) == 2
    assert client.get(f"/api/products/{hidden['id']}").status_code == 404


def test_product_search_and_featured(client, make_product):
    make_product("Lavender Relax", featured=True)
    make_product("Rustic Pillar")
    assert [p["name"] for p in client.get("/api/products", params={"q": "lavender"}).json()] == ["Lavender Relax"]
    assert [p["name"] for p in client.get("/api/products/featured").json()] == ["Lavender Relax"]


def test_deleting_category_keeps_products(client, admin_headers, make_product):
    category = client.post("/api/categories", json={"name": "Mirisne svijeće"}, headers=admin_headers).json()
    product = make_product(category_id=category["id"])
    assert [p["id"] for p in client.get(f"/api/categories/{category['id']}/products").json()] == [product["id"]]

    assert client.delete(f"/api/categories/{category['id']}", headers=admin_headers).status_code == 204
    kept = client.get(f"/api/products/{product['id']}").json()
    assert kept["category_id"] == category["id"]


def test_product_scents_and_colors(client, admin_headers, make_product):
    product = make_product()
    scent = client.post("/api/scents", json={"name": "Vanilija"}, headers=admin_headers).json()
    color = client.post("/api/colors", json={"name": "Bijela", "hex_value": "#FFFFFF"}, headers=admin_headers).json()

    for _ in range(2):
        r = client.post(f"/api/products/{product['id']}/scents", json={"scent_id": scent["id"]}, headers=admin_headers)
        assert r.status_code == 201
    client.post(f"/api/products/{product['id']}/colors", json={"color_id": color["id"]}, headers=admin_headers)

    assert [s["name"] for s in client.get(f"/api/products/{product['id']}/scents").json()] == ["Vanilija"]
    assert [c["hex_value"] for c in client.get(f"/api/products/{product['id']}/colors").json()] == ["#FFFFFF"]

    client.delete(f"/api/products/{product['id']}/scents/{scent['id']}", headers=admin_headers)
    assert client.get(f"/api/products/{product['id']}/scents").json() == []


def test_active_scents(client, admin_headers):
    client.post("/api/scents", json={"name": "Ruža"}, headers=admin_headers)
    client.post("/api/scents", json={"name": "Cimet", "active": False}, headers=admin_headers)
    assert [s["name"] for s in client.get("/api/scents/active").json()] == ["Ruža"]
    assert len(client.get("/api/scents").json()) == 2


def test_collections(client, admin_headers, make_product):
    product = make_product()
    collection = client.post(
        "/api/collections",
        json={"name": "Božić", "description": "Blagdanska kolekcija", "featured_on_home": True},
        headers=admin_headers,
    ).json()
    r = client.post(
        f"/api/collections/{collection['id']}/products",
        json={"product_id": product["id"]},
        headers=admin_headers,
    )
    assert r.status_code == 201
    assert [p["id"] for p in client.get(f"/api/collections/{collection['id']}/products").json()] == [product["id"]]
    assert [c["name"] for c in client.get("/api/collections/featured").json()] == ["Božić"]

    assert client.delete(f"/api/collections/{collection['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/products/{product['id']}").status_code == 200


def test_reviews(client, user_headers, admin_headers, make_product):
    product = make_product()
    r = client.post(f"/api/products/{product['id']}/reviews", json={"rating": 5, "comment": "Divno"}, headers=user_headers)
    assert r.status_code == 201
    assert client.post(
        f"/api/products/{product['id']}/reviews", json={"rating": 6}, headers=user_headers
    ).status_code == 422

    reviews = client.get("/api/reviews").json()
    assert reviews[0]["user"]["username"] == "ana"
    assert reviews[0]["product"]["name"] == "Vanilla Dreams"

    client.delete(f"/api/reviews/{r.json()['id']}", headers=admin_headers)
    assert client.get(f"/api/products/{product['id']}/reviews").json() == []


def test_image_upload(client, admin_headers):
    files = {"image": ("svijeca.png", b"\x89PNG fake", "image/png")}
    r = client.post("/api/upload", files=files, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["image_url"].startswith("/uploads/")

    files = {"image": ("notes.txt", b"hello", "text/plain")}
    assert client.post("/api/upload", files=files, headers=admin_headers).status_code == 400


def test_patch_rejects_null_for_required_fields(client, admin_headers, user_headers, make_product):
    product = make_product(price=20, image_url="/uploads/a.png")
    for field in ["price", "name", "description", "stock"]:
        r = client.patch(f"/api/products/{product['id']}", json={field: None}, headers=admin_headers)
        assert r.status_code == 422, field

    kept = client.get(f"/api/products/{product['id']}").json()
    assert kept["price"] == 20
    assert kept["stock"] == 10

    client.post("/api/cart", json={"product_id": product["id"]}, headers=user_headers)
    assert client.get("/api/cart/summary", headers=user_headers).json()["subtotal"] == 20


def test_patch_can_clear_optional_fields(client, admin_headers, make_product):
    product = make_product(image_url="/uploads/a.png", burn_time="40 sati")
    r = client.patch(f"/api/products/{product['id']}", json={"image_url": None, "stock": 3}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["image_url"] is None
    assert r.json()["stock"] == 3
    assert r.json()["burn_time"] == "40 sati"
