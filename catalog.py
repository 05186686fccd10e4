import logging
import os
import re
import secrets
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from pydantic import BaseModel, Field, ValidationError

from auth import admin_user, current_user, is_admin, optional_user
from config import UPLOAD_DIR
from database import create_document, db, find_by_id, get_documents, now_utc, oid, to_str_id
from schemas import Category as CategorySchema
from schemas import Collection as CollectionSchema
from schemas import Color as ColorSchema
from schemas import Product as ProductSchema
from schemas import Review as ReviewSchema
from schemas import Scent as ScentSchema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


class ProductPatch(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = None
    category_id: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    scent: Optional[str] = None
    color: Optional[str] = None
    burn_time: Optional[str] = None
    featured: Optional[bool] = None
    has_color_options: Optional[bool] = None
    allow_multiple_colors: Optional[bool] = None
    active: Optional[bool] = None
    dimensions: Optional[str] = None
    weight: Optional[str] = None
    materials: Optional[str] = None
    instructions: Optional[str] = None
    maintenance: Optional[str] = None


class ScentLink(BaseModel):
    scent_id: str


class ColorLink(BaseModel):
    color_id: str


class ProductLink(BaseModel):
    product_id: str


class ReviewIn(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


# Helpers

def _get_or_404(collection: str, doc_id: str, label: str) -> dict:
    doc = find_by_id(collection, doc_id)
    if not doc:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return doc


def _create(collection: str, payload: BaseModel) -> dict:
    return to_str_id(find_by_id(collection, create_document(collection, payload)))


def _replace(collection: str, doc_id: str, payload: BaseModel, label: str) -> dict:
    doc = _get_or_404(collection, doc_id, label)
    db[collection].update_one({"_id": doc["_id"]}, {"$set": {**payload.model_dump(), "updated_at": now_utc()}})
    return to_str_id(find_by_id(collection, doc_id))


def _delete(collection: str, doc_id: str) -> None:
    _id = oid(doc_id)
    if _id is not None:
        db[collection].delete_one({"_id": _id})


def _linked(join: str, key: str, target: str, product_id: str) -> List[dict]:
    ids = [oid(link[key]) for link in db[join].find({"product_id": product_id})]
    ids = [i for i in ids if i is not None]
    if not ids:
        return []
    return [to_str_id(d) for d in db[target].find({"_id": {"$in": ids}})]


def _link(join: str, key: str, product_id: str, target_id: str) -> dict:
    pair = {"product_id": product_id, key: target_id}
    existing = db[join].find_one(pair)
    if existing:
        return to_str_id(existing)
    return to_str_id(find_by_id(join, create_document(join, pair)))


def _visible(query: dict, user: Optional[dict]) -> dict:
    if not is_admin(user):
        query["active"] = True
    return query


# Products

@router.get("/products")
def list_products(
    category_id: Optional[str] = None,
    q: Optional[str] = None,
    user: Optional[dict] = Depends(optional_user),
):
    filt: Dict = _visible({}, user)
    if category_id:
        filt["category_id"] = category_id
    if q:
        pattern = re.escape(q)
        filt["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]
    return [to_str_id(p) for p in db["product"].find(filt).sort("created_at", 1)]


@router.get("/products/featured")
def featured_products():
    return [to_str_id(p) for p in db["product"].find({"featured": True, "active": True})]


@router.get("/products/{product_id}")
def get_product(product_id: str, user: Optional[dict] = Depends(optional_user)):
    product = _get_or_404("product", product_id, "Product")
    if not product.get("active", True) and not is_admin(user):
        raise HTTPException(status_code=404, detail="Product not found")
    return to_str_id(product)


@router.post("/products", status_code=201)
def create_product(payload: ProductSchema, admin: dict = Depends(admin_user)):
    return _create("product", payload)


@router.put("/products/{product_id}")
def replace_product(product_id: str, payload: ProductSchema, admin: dict = Depends(admin_user)):
    return _replace("product", product_id, payload, "Product")


@router.patch("/products/{product_id}")
def patch_product(product_id: str, payload: ProductPatch, admin: dict = Depends(admin_user)):
    product = _get_or_404("product", product_id, "Product")
    changes = payload.model_dump(exclude_unset=True)
    if changes:
        # explicit nulls are only allowed where the product field is optional
        merged = {k: v for k, v in product.items() if k in ProductSchema.model_fields}
        merged.update(changes)
        try:
            validated = ProductSchema(**merged)
        except ValidationError as e:
            raise HTTPException(
                status_code=422,
                detail=[{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()],
            )
        update = validated.model_dump(include=set(changes))
        update["updated_at"] = now_utc()
        db["product"].update_one({"_id": product["_id"]}, {"$set": update})
    return to_str_id(find_by_id("product", product_id))


@router.delete("/products/{product_id}", status_code=204)
def delete_product(product_id: str, admin: dict = Depends(admin_user)):
    _delete("product", product_id)
    for join in ("productscent", "productcolor", "productcollection"):
        db[join].delete_many({"product_id": product_id})
    return Response(status_code=204)


# Product scents / colors

@router.get("/products/{product_id}/scents")
def product_scents(product_id: str):
    return _linked("productscent", "scent_id", "scent", product_id)


@router.post("/products/{product_id}/scents", status_code=201)
def add_product_scent(product_id: str, payload: ScentLink, admin: dict = Depends(admin_user)):
    _get_or_404("product", product_id, "Product")
    _get_or_404("scent", payload.scent_id, "Scent")
    return _link("productscent", "scent_id", product_id, payload.scent_id)


@router.delete("/products/{product_id}/scents/{scent_id}", status_code=204)
def remove_product_scent(product_id: str, scent_id: str, admin: dict = Depends(admin_user)):
    db["productscent"].delete_many({"product_id": product_id, "scent_id": scent_id})
    return Response(status_code=204)


@router.delete("/products/{product_id}/scents", status_code=204)
def clear_product_scents(product_id: str, admin: dict = Depends(admin_user)):
    db["productscent"].delete_many({"product_id": product_id})
    return Response(status_code=204)


@router.get("/products/{product_id}/colors")
def product_colors(product_id: str):
    return _linked("productcolor", "color_id", "color", product_id)


@router.post("/products/{product_id}/colors", status_code=201)
def add_product_color(product_id: str, payload: ColorLink, admin: dict = Depends(admin_user)):
    _get_or_404("product", product_id, "Product")
    _get_or_404("color", payload.color_id, "Color")
    return _link("productcolor", "color_id", product_id, payload.color_id)


@router.delete("/products/{product_id}/colors/{color_id}", status_code=204)
def remove_product_color(product_id: str, color_id: str, admin: dict = Depends(admin_user)):
    db["productcolor"].delete_many({"product_id": product_id, "color_id": color_id})
    return Response(status_code=204)


@router.delete("/products/{product_id}/colors", status_code=204)
def clear_product_colors(product_id: str, admin: dict = Depends(admin_user)):
    db["productcolor"].delete_many({"product_id": product_id})
    return Response(status_code=204)


# Categories

@router.get("/categories")
def list_categories():
    return [to_str_id(c) for c in get_documents("category")]


@router.get("/categories/{category_id}")
def get_category(category_id: str):
    return to_str_id(_get_or_404("category", category_id, "Category"))


@router.get("/categories/{category_id}/products")
def category_products(category_id: str, user: Optional[dict] = Depends(optional_user)):
    return [to_str_id(p) for p in db["product"].find(_visible({"category_id": category_id}, user))]


@router.post("/categories", status_code=201)
def create_category(payload: CategorySchema, admin: dict = Depends(admin_user)):
    return _create("category", payload)


@router.put("/categories/{category_id}")
def update_category(category_id: str, payload: CategorySchema, admin: dict = Depends(admin_user)):
    return _replace("category", category_id, payload, "Category")


@router.delete("/categories/{category_id}", status_code=204)
def delete_category(category_id: str, admin: dict = Depends(admin_user)):
    # products keep their category_id
    _delete("category", category_id)
    return Response(status_code=204)


# Scents

@router.get("/scents")
def list_scents():
    return [to_str_id(s) for s in get_documents("scent")]


@router.get("/scents/active")
def active_scents():
    return [to_str_id(s) for s in db["scent"].find({"active": True})]


@router.get("/scents/{scent_id}")
def get_scent(scent_id: str):
    return to_str_id(_get_or_404("scent", scent_id, "Scent"))


@router.post("/scents", status_code=201)
def create_scent(payload: ScentSchema, admin: dict = Depends(admin_user)):
    return _create("scent", payload)


@router.put("/scents/{scent_id}")
def update_scent(scent_id: str, payload: ScentSchema, admin: dict = Depends(admin_user)):
    return _replace("scent", scent_id, payload, "Scent")


@router.delete("/scents/{scent_id}", status_code=204)
def delete_scent(scent_id: str, admin: dict = Depends(admin_user)):
    _delete("scent", scent_id)
    db["productscent"].delete_many({"scent_id": scent_id})
    return Response(status_code=204)


# Colors

@router.get("/colors")
def list_colors():
    return [to_str_id(c) for c in get_documents("color")]


@router.get("/colors/active")
def active_colors():
    return [to_str_id(c) for c in db["color"].find({"active": True})]


@router.get("/colors/{color_id}")
def get_color(color_id: str):
    return to_str_id(_get_or_404("color", color_id, "Color"))


@router.post("/colors", status_code=201)
def create_color(payload: ColorSchema, admin: dict = Depends(admin_user)):
    return _create("color", payload)


@router.put("/colors/{color_id}")
def update_color(color_id: str, payload: ColorSchema, admin: dict = Depends(admin_user)):
    return _replace("color", color_id, payload, "Color")


@router.delete("/colors/{color_id}", status_code=204)
def delete_color(color_id: str, admin: dict = Depends(admin_user)):
    _delete("color", color_id)
    db["productcolor"].delete_many({"color_id": color_id})
    return Response(status_code=204)


# Collections

@router.get("/collections")
def list_collections():
    return [to_str_id(c) for c in db["collection"].find()]


@router.get("/collections/active")
def active_collections():
    return [to_str_id(c) for c in db["collection"].find({"active": True})]


@router.get("/collections/featured")
def featured_collections():
    return [to_str_id(c) for c in db["collection"].find({"active": True, "featured_on_home": True})]


@router.get("/collections/{collection_id}")
def get_collection(collection_id: str):
    return to_str_id(_get_or_404("collection", collection_id, "Collection"))


@router.post("/collections", status_code=201)
def create_collection(payload: CollectionSchema, admin: dict = Depends(admin_user)):
    return _create("collection", payload)


@router.put("/collections/{collection_id}")
def update_collection(collection_id: str, payload: CollectionSchema, admin: dict = Depends(admin_user)):
    return _replace("collection", collection_id, payload, "Collection")


@router.delete("/collections/{collection_id}", status_code=204)
def delete_collection(collection_id: str, admin: dict = Depends(admin_user)):
    _delete("collection", collection_id)
    db["productcollection"].delete_many({"collection_id": collection_id})
    return Response(status_code=204)


@router.get("/collections/{collection_id}/products")
def collection_products(collection_id: str, user: Optional[dict] = Depends(optional_user)):
    ids = [oid(link["product_id"]) for link in db["productcollection"].find({"collection_id": collection_id})]
    ids = [i for i in ids if i is not None]
    if not ids:
        return []
    return [to_str_id(p) for p in db["product"].find(_visible({"_id": {"$in": ids}}, user))]


@router.post("/collections/{collection_id}/products", status_code=201)
def add_collection_product(collection_id: str, payload: ProductLink, admin: dict = Depends(admin_user)):
    _get_or_404("collection", collection_id, "Collection")
    _get_or_404("product", payload.product_id, "Product")
    return _link("productcollection", "collection_id", payload.product_id, collection_id)


@router.delete("/collections/{collection_id}/products/{product_id}", status_code=204)
def remove_collection_product(collection_id: str, product_id: str, admin: dict = Depends(admin_user)):
    db["productcollection"].delete_many({"collection_id": collection_id, "product_id": product_id})
    return Response(status_code=204)


# Reviews

@router.get("/reviews")
def list_reviews():
    reviews = [to_str_id(r) for r in db["review"].find().sort("created_at", -1)]
    for r in reviews:
        author = find_by_id("user", r["user_id"])
        product = find_by_id("product", r["product_id"])
        r["user"] = {
            "id": r["user_id"],
            "username": author.get("username") if author else None,
            "first_name": author.get("first_name") if author else None,
            "last_name": author.get("last_name") if author else None,
        }
        r["product"] = {"id": r["product_id"], "name": product.get("name") if product else None}
    return reviews


@router.get("/products/{product_id}/reviews")
def product_reviews(product_id: str):
    return [to_str_id(r) for r in db["review"].find({"product_id": product_id}).sort("created_at", -1)]


@router.post("/products/{product_id}/reviews", status_code=201)
def create_review(product_id: str, payload: ReviewIn, user: dict = Depends(current_user)):
    _get_or_404("product", product_id, "Product")
    review = ReviewSchema(user_id=str(user["_id"]), product_id=product_id, **payload.model_dump())
    return _create("review", review)


@router.delete("/reviews/{review_id}", status_code=204)
def delete_review(review_id: str, admin: dict = Depends(admin_user)):
    _delete("review", review_id)
    return Response(status_code=204)


# Images

@router.post("/upload")
def upload_image(image: UploadFile = File(...), admin: dict = Depends(admin_user)):
    ext = os.path.splitext(image.filename or "")[1].lower()
    if not (image.content_type or "").startswith("image/") or ext not in IMAGE_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Greška pri uploadu slike")
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    filename = f"{secrets.token_hex(8)}{ext}"
    with open(os.path.join(UPLOAD_DIR, filename), "wb") as fh:
        fh.write(image.file.read())
    logger.info("Image uploaded as %s", filename)
    return {"image_url": f"/uploads/{filename}"}
