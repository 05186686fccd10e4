from database import create_document
from invoices import generate_invoice_from_order, invoice_items, next_invoice_number
from schemas import Invoice, Order, OrderItem


def make_order(user_id, number=1):
    order_id = create_document("order", Order(
        number=number,
        user_id=user_id,
        total=30.5,
        subtotal=25.5,
        shipping_cost=5,
        payment_method="bank_transfer",
        shipping_city="Zagreb",
    ))
    create_document("orderitem", OrderItem(
        order_id=order_id, product_id="p1", product_name="Vanilla Dreams", quantity=1, price=25.5, scent_name="Vanilija",
    ))
    return order_id


def test_numbering_starts_at_450():
    assert next_invoice_number() == "i450"


def test_numbering_follows_last_invoice(user_id):
    create_document("invoice", Invoice(invoice_number="i461", user_id=user_id, customer_name="Ana", total=1, subtotal=1))
    assert next_invoice_number() == "i462"
    assert next_invoice_number(order_number=500) == "i500"


def test_generate_from_order(user_id):
    order_id = make_order(user_id)
    invoice_id = generate_invoice_from_order(order_id, "de")
    assert invoice_id
    items = invoice_items(invoice_id)
    assert [(i["product_name"], i["selected_scent"]) for i in items] == [("Vanilla Dreams", "Vanilija")]

    # second call returns the same invoice
    assert generate_invoice_from_order(order_id) == invoice_id


def test_generate_for_unknown_order():
    assert generate_invoice_from_order("000000000000000000000000") is None


def test_invoice_access(client, user_id, user_headers, admin_headers, login_as):
    invoice_id = generate_invoice_from_order(make_order(user_id))

    r = client.get(f"/api/invoices/{invoice_id}", headers=user_headers)
    assert r.status_code == 200
    assert r.json()["customer_name"] == "ana"
    assert len(r.json()["items"]) == 1
    assert [i["id"] for i in client.get("/api/user/invoices", headers=user_headers).json()] == [invoice_id]

    assert client.get(f"/api/invoices/{invoice_id}", headers=login_as("ivo")).status_code == 403
    assert client.get("/api/invoices", headers=user_headers).status_code == 403
    assert len(client.get("/api/invoices", headers=admin_headers).json()) == 1


def test_manual_invoice(client, admin_headers):
    body = {
        "invoice": {"customer_name": "Gost", "total": 12, "subtotal": 12},
        "items": [{"product_id": "p1", "product_name": "Rustic Pillar", "quantity": 2, "price": 6}],
    }
    r = client.post("/api/invoices", json=body, headers=admin_headers)
    assert r.status_code == 201
    invoice = r.json()
    assert invoice["invoice_number"] == "i450"
    assert len(invoice["items"]) == 1
    assert client.get("/api/invoices/last", headers=admin_headers).json()["id"] == invoice["id"]

    assert client.delete(f"/api/invoices/{invoice['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/invoices/{invoice['id']}", headers=admin_headers).status_code == 404


def test_numbering_finds_number_inside_prefix(user_id):
    create_document("invoice", Invoice(invoice_number="R-i470", user_id=user_id, customer_name="Ana", total=1, subtotal=1))
    assert next_invoice_number() == "i471"
