import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import accounts
import catalog
import checkout
import content
import shop_settings
from auth import admin_user, hash_password
from config import CORS_ORIGINS, LOG_LEVEL, PORT
from database import create_document, db, ensure_indexes
from schemas import Category as CategorySchema
from schemas import ContactSettings, ShippingSettings
from schemas import Product as ProductSchema
from schemas import User as UserSchema

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Kerzenwelt by Dani API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(accounts.router)
app.include_router(catalog.router)
app.include_router(checkout.router)
app.include_router(content.router)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.on_event("startup")
def startup():
    if db is None:
        logger.warning("Database not configured, DATABASE_URL and DATABASE_NAME are required")
        return
    ensure_indexes()
    ensure_default_admin()


# Health
@app.get("/")
def read_root():
    return {"message": "Kerzenwelt by Dani backend running"}


@app.get("/test")
def test_database():
    try:
        collections = db.list_collection_names() if db is not None else []
        return {"backend": "ok", "db": "ok" if db is not None else "not_configured", "collections": collections}
    except Exception as e:
        return {"backend": "ok", "db": f"error: {str(e)[:80]}"}


SEED_CATEGORIES = [
    {"name": "Mirisne svijeće", "description": "Svijeće s prirodnim mirisima"},
    {"name": "Dekorativne svijeće", "description": "Ručno oblikovane svijeće za uređenje doma"},
    {"name": "Posebne prigode", "description": "Svijeće za vjenčanja, krštenja i blagdane"},
]

SEED_PRODUCTS = [
    {
        "name": "Vanilla Dreams",
        "description": "Mirisna svijeća od sojinog voska s notama vanilije.",
        "price": 25.99,
        "stock": 12,
        "scent": "Vanilija",
        "burn_time": "40 sati",
        "featured": True,
        "category": "Mirisne svijeće",
    },
    {
        "name": "Lavender Relax",
        "description": "Umirujuća svijeća s eteričnim uljem lavande.",
        "price": 22.99,
        "stock": 15,
        "scent": "Lavanda",
        "burn_time": "35 sati",
        "featured": True,
        "category": "Mirisne svijeće",
    },
    {
        "name": "Rustic Pillar",
        "description": "Dekorativna stupasta svijeća rustikalnog izgleda.",
        "price": 18.5,
        "stock": 8,
        "category": "Dekorativne svijeće",
    },
]


def ensure_default_admin() -> bool:
    """Create the default admin account when no admin exists yet."""
    if db["user"].find_one({"is_admin": True}):
        return False
    if db["user"].find_one({"username": "admin"}):
        logger.warning("No admin account and username \"admin\" is taken, default admin not created")
        return False
    admin = UserSchema(
        username="admin",
        email="admin@example.com",
        password_hash=hash_password("admin123"),
        is_admin=True,
        email_verified=True,
    )
    create_document("user", admin)
    logger.warning("Default admin account created, change its password")
    return True


@app.post("/seed")
def seed(admin: dict = Depends(admin_user)):
    """Insert the categories, products and settings that are missing."""
    created = {"categories": 0, "products": 0, "settings": 0}

    category_ids = {}
    for c in SEED_CATEGORIES:
        existing = db["category"].find_one({"name": c["name"]})
        if existing:
            category_ids[c["name"]] = str(existing["_id"])
            continue
        category_ids[c["name"]] = create_document("category", CategorySchema(**c))
        created["categories"] += 1

    for p in SEED_PRODUCTS:
        if db["product"].find_one({"name": p["name"]}):
            continue
        data = {k: v for k, v in p.items() if k != "category"}
        create_document("product", ProductSchema(category_id=category_ids.get(p["category"]), **data))
        created["products"] += 1

    if shop_settings.get_setting(shop_settings.FREE_SHIPPING_THRESHOLD) is None:
        shop_settings.save_shipping_settings(ShippingSettings())
        created["settings"] += 2
    if shop_settings.get_setting(shop_settings.CONTACT_KEYS["email"]) is None:
        shop_settings.save_contact_settings(ContactSettings(
            address="Ulica svijeća 1",
            city="Zagreb",
            postal_code="10000",
            phone="+385 1 234 5678",
            email="info@kerzenweltbydani.com",
            working_hours="Pon - Pet: 9:00 - 17:00",
        ))
        created["settings"] += len(shop_settings.CONTACT_KEYS)

    logger.info("Seed finished: %s", created)
    return {"seeded": True, "created": created}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
