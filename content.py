import logging
import os
import random
import secrets
import string
from typing import List, Optional

import requests
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, EmailStr, Field

import mailer
import shop_settings
from auth import admin_user
from config import DOCUMENTS_DIR, MAX_DOCUMENT_SIZE
from database import create_document, db, find_by_id, now_utc, to_str_id
from schemas import CompanyDocument as CompanyDocumentSchema
from schemas import ContactSettings, HeroSettings, InstagramImage, ShippingSettings
from schemas import Page as PageSchema
from schemas import Setting as SettingSchema
from schemas import Subscriber as SubscriberSchema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

INSTAGRAM_MEDIA_URL = "https://graph.instagram.com/me/media"
INSTAGRAM_FIELDS = "id,caption,media_type,media_url,permalink,thumbnail_url,timestamp"

DOCUMENT_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "image/jpeg",
    "image/png",
    "image/webp",
    "text/plain",
}


class SettingValue(BaseModel):
    value: str = Field(..., min_length=1)


class PageIn(BaseModel):
    type: str = Field(..., min_length=1)
    title: str
    content: str


class PageUpdate(BaseModel):
    id: str
    title: str
    content: str


class PageContent(BaseModel):
    title: str
    content: str


class InstagramImages(BaseModel):
    images: List[InstagramImage]


class InstagramToken(BaseModel):
    token: str = Field(..., min_length=1)


class VisitIn(BaseModel):
    path: str = Field(..., min_length=1)


class SubscribeIn(BaseModel):
    email: EmailStr
    language: str = "de"


# Typed settings, registered before /settings/{key}

@router.get("/settings/hero")
def get_hero():
    return shop_settings.get_hero_settings()


@router.post("/settings/hero")
def save_hero(payload: HeroSettings, admin: dict = Depends(admin_user)):
    return shop_settings.save_hero_settings(payload)


@router.get("/settings/contact")
def get_contact():
    return shop_settings.get_contact_settings()


@router.post("/settings/contact")
def save_contact(payload: ContactSettings, admin: dict = Depends(admin_user)):
    return shop_settings.save_contact_settings(payload)


@router.get("/settings/shipping")
def get_shipping():
    return shop_settings.get_shipping_settings()


@router.post("/settings/shipping")
def save_shipping(payload: ShippingSettings, admin: dict = Depends(admin_user)):
    logger.info(
        "Shipping settings changed: threshold %s, rate %s",
        payload.free_shipping_threshold, payload.standard_shipping_rate,
    )
    return shop_settings.save_shipping_settings(payload)


# Generic settings

@router.get("/settings")
def list_settings():
    return shop_settings.list_settings()


@router.get("/settings/{key}")
def get_setting(key: str):
    setting = shop_settings.get_setting(key)
    if not setting:
        raise HTTPException(status_code=404, detail="Setting not found")
    return setting


@router.post("/settings", status_code=201)
def create_setting(payload: SettingSchema, admin: dict = Depends(admin_user)):
    if shop_settings.get_setting(payload.key):
        raise HTTPException(status_code=400, detail="Setting with this key already exists")
    return shop_settings.set_value(payload.key, payload.value)


@router.put("/settings/{key}")
def update_setting(key: str, payload: SettingValue, admin: dict = Depends(admin_user)):
    if not shop_settings.get_setting(key):
        raise HTTPException(status_code=404, detail="Setting not found")
    return shop_settings.set_value(key, payload.value)


@router.delete("/settings/{key}")
def delete_setting(key: str, admin: dict = Depends(admin_user)):
    if not shop_settings.delete_setting(key):
        raise HTTPException(status_code=404, detail="Setting not found")
    return {"success": True}


# Pages

def _upsert_page(page_type: str, title: str, content: str) -> dict:
    page = PageSchema(type=page_type, title=title, content=content)
    now = now_utc()
    db["page"].update_one(
        {"type": page_type},
        {"$set": {**page.model_dump(), "updated_at": now}, "$setOnInsert": {"created_at": now}},
        upsert=True,
    )
    return to_str_id(db["page"].find_one({"type": page_type}))


@router.get("/pages/{page_type}")
def get_page(page_type: str):
    page = db["page"].find_one({"type": page_type})
    if not page:
        raise HTTPException(status_code=404, detail="Page not found")
    return to_str_id(page)


@router.post("/pages")
def save_page(payload: PageIn, admin: dict = Depends(admin_user)):
    return _upsert_page(payload.type, payload.title, payload.content)


@router.put("/pages")
def update_page(payload: PageUpdate, admin: dict = Depends(admin_user)):
    page = find_by_id("page", payload.id)
    if not page:
        raise HTTPException(status_code=404, detail="Page not found")
    db["page"].update_one(
        {"_id": page["_id"]},
        {"$set": {"title": payload.title, "content": payload.content, "updated_at": now_utc()}},
    )
    return to_str_id(find_by_id("page", payload.id))


@router.post("/pages/{page_type}")
def save_page_by_type(page_type: str, payload: PageContent, admin: dict = Depends(admin_user)):
    return _upsert_page(page_type, payload.title, payload.content)


# Instagram

@router.get("/instagram/manual")
def get_instagram_manual():
    return shop_settings.get_instagram_images()


@router.post("/instagram/manual")
def save_instagram_manual(payload: InstagramImages, admin: dict = Depends(admin_user)):
    shop_settings.save_instagram_images(payload.images)
    return {"success": True}


@router.post("/instagram/token")
def save_instagram_token(payload: InstagramToken, admin: dict = Depends(admin_user)):
    shop_settings.set_value(shop_settings.INSTAGRAM_TOKEN, payload.token)
    return {"success": True}


@router.get("/instagram/media")
def instagram_media(limit: int = 12):
    token = shop_settings.get_value(shop_settings.INSTAGRAM_TOKEN)
    if not token:
        return {"source": "manual", "data": shop_settings.get_instagram_images()[:limit]}
    try:
        r = requests.get(
            INSTAGRAM_MEDIA_URL,
            params={"fields": INSTAGRAM_FIELDS, "limit": limit, "access_token": token},
            timeout=10,
        )
        r.raise_for_status()
        return {"source": "instagram", "data": r.json().get("data", [])}
    except (requests.RequestException, ValueError) as e:
        logger.warning("Instagram media request failed, using manual images: %s", e)
        return {"source": "manual", "data": shop_settings.get_instagram_images()[:limit]}


# Page visits

@router.post("/page-visits")
def record_visit(payload: VisitIn):
    now = now_utc()
    db["pagevisit"].update_one(
        {"path": payload.path},
        {"$inc": {"count": 1}, "$set": {"last_visited": now, "updated_at": now}, "$setOnInsert": {"created_at": now}},
        upsert=True,
    )
    return to_str_id(db["pagevisit"].find_one({"path": payload.path}))


@router.get("/page-visits")
def list_visits(admin: dict = Depends(admin_user)):
    return [to_str_id(v) for v in db["pagevisit"].find().sort("count", -1)]


@router.get("/page-visits/{path:path}")
def get_visit(path: str, admin: dict = Depends(admin_user)):
    visit = db["pagevisit"].find_one({"path": path})
    if not visit:
        raise HTTPException(status_code=404, detail="No visits found for this path")
    return to_str_id(visit)


# Newsletter

def discount_code() -> str:
    alphabet = string.ascii_uppercase + string.digits
    return "WELCOME" + "".join(random.choice(alphabet) for _ in range(5))


@router.post("/subscribe")
def subscribe(payload: SubscribeIn):
    if db["subscriber"].find_one({"email": payload.email}):
        raise HTTPException(status_code=400, detail="Email is already subscribed")
    subscriber = SubscriberSchema(email=payload.email, discount_code=discount_code(), language=payload.language)
    create_document("subscriber", subscriber)
    logger.info("New newsletter subscriber %s", payload.email)

    if mailer.is_configured():
        ok, error = mailer.send_subscription_email(payload.email, subscriber.discount_code, payload.language)
        if not ok:
            logger.warning("Welcome email for %s not sent: %s", payload.email, error)
    return {"success": True, "message": "Successfully subscribed", "discount_code": subscriber.discount_code}


# Company documents

@router.get("/company-documents")
def list_documents(admin: dict = Depends(admin_user)):
    return [to_str_id(d) for d in db["companydocument"].find().sort("created_at", -1)]


@router.post("/company-documents/upload", status_code=201)
def upload_document(
    file: UploadFile = File(...),
    name: str = Form(...),
    description: Optional[str] = Form(None),
    admin: dict = Depends(admin_user),
):
    if file.content_type not in DOCUMENT_MIME_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Nepodržani tip datoteke. Podržani formati su PDF, DOC, DOCX, XLS, XLSX, PPT, PPTX, JPG, PNG, WEBP i TXT.",
        )
    if not name.strip():
        raise HTTPException(status_code=400, detail="Naziv dokumenta je obavezan")
    data = file.file.read(MAX_DOCUMENT_SIZE + 1)
    if len(data) > MAX_DOCUMENT_SIZE:
        raise HTTPException(status_code=400, detail="File too large")

    ext = os.path.splitext(file.filename or "")[1].lower()
    filename = f"{secrets.token_hex(8)}{ext}"
    os.makedirs(DOCUMENTS_DIR, exist_ok=True)
    with open(os.path.join(DOCUMENTS_DIR, filename), "wb") as fh:
        fh.write(data)

    document = CompanyDocumentSchema(
        name=name,
        description=description or None,
        file_url=f"/company_documents/{filename}",
        file_type=ext.lstrip("."),
        file_size=len(data),
        uploaded_by=str(admin["_id"]),
    )
    logger.info("Company document %s uploaded as %s", name, filename)
    return to_str_id(find_by_id("companydocument", create_document("companydocument", document)))


@router.delete("/company-documents/{document_id}")
def delete_document(document_id: str, admin: dict = Depends(admin_user)):
    document = find_by_id("companydocument", document_id)
    if not document:
        raise HTTPException(status_code=404, detail="Dokument nije pronađen")
    path = os.path.join(DOCUMENTS_DIR, os.path.basename(document["file_url"]))
    if os.path.exists(path):
        os.remove(path)
    db["companydocument"].delete_one({"_id": document["_id"]})
    return {"success": True}
