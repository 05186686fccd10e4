import mongomock
import pytest

import database

# Route modules bind `db` at import time, so swap it in before they load.
database.db = mongomock.MongoClient()["kerzenwelt_test"]

from fastapi.testclient import TestClient  # noqa: E402

import catalog  # noqa: E402
import content  # noqa: E402
import mailer  # noqa: E402
import paypal  # noqa: E402
from auth import create_session, hash_password  # noqa: E402
from database import create_document  # noqa: E402
from main import app  # noqa: E402
from schemas import User  # noqa: E402


@pytest.fixture(autouse=True)
def clean_db(monkeypatch, tmp_path):
    for name in database.db.list_collection_names():
        database.db.drop_collection(name)
    monkeypatch.setattr(mailer, "RESEND_API_KEY", "")
    monkeypatch.setattr(paypal, "PAYPAL_CLIENT_ID", "")
    monkeypatch.setattr(paypal, "PAYPAL_CLIENT_SECRET", "")
    monkeypatch.setattr(catalog, "UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(content, "DOCUMENTS_DIR", str(tmp_path / "documents"))
    yield


@pytest.fixture
def db():
    return database.db


@pytest.fixture
def client():
    return TestClient(app)


def make_user(username, is_admin=False, **extra):
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password("secret123"),
        is_admin=is_admin,
        email_verified=True,
        **extra,
    )
    return create_document("user", user)


def auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_id():
    return make_user("admin", is_admin=True)


@pytest.fixture
def admin_headers(admin_id):
    return auth(create_session(admin_id))


@pytest.fixture
def user_id():
    return make_user("ana")


@pytest.fixture
def user_headers(user_id):
    return auth(create_session(user_id))


@pytest.fixture
def make_product(client, admin_headers):
    def _make(name="Vanilla Dreams", price=25.99, stock=10, **extra):
        body = {"name": name, "description": f"{name} candle", "price": price, "stock": stock, **extra}
        r = client.post("/api/products", json=body, headers=admin_headers)
        assert r.status_code == 201, r.text
        return r.json()
    return _make


@pytest.fixture
def login_as():
    """Create a verified user and return auth headers for it."""
    def _login(username, is_admin=False, **extra):
        return auth(create_session(make_user(username, is_admin=is_admin, **extra)))
    return _login
