"""
Typed access to the key/value "setting" collection.

Values are stored as strings; the helpers here own the per-key parsing so
route handlers never deal with raw strings for known keys.
"""
import json
import logging
from typing import List, Optional

from pydantic import ValidationError

from database import db, now_utc, to_str_id
from schemas import ContactSettings, HeroSettings, InstagramImage, ShippingSettings

logger = logging.getLogger(__name__)

FREE_SHIPPING_THRESHOLD = "freeShippingThreshold"
STANDARD_SHIPPING_RATE = "standardShippingRate"
HERO = "heroSettings"
INSTAGRAM_TOKEN = "instagram_token"
INSTAGRAM_MANUAL_IMAGES = "instagram_manual_images"

CONTACT_KEYS = {
    "address": "contact_address",
    "city": "contact_city",
    "postal_code": "contact_postal_code",
    "phone": "contact_phone",
    "email": "contact_email",
    "working_hours": "contact_working_hours",
}

DEFAULT_HERO = HeroSettings(
    title_text={
        "de": "Handgefertigte Kerzen für besondere Momente",
        "hr": "Ručno izrađene svijeće za posebne trenutke",
        "en": "Handmade Candles for Special Moments",
        "it": "Candele artigianali per momenti speciali",
        "sl": "Ročno izdelane sveče za posebne trenutke",
    },
    subtitle_text={
        "de": "Entdecken Sie unsere einzigartige Sammlung handgefertigter Kerzen, perfekt für jede Gelegenheit.",
        "hr": "Otkrijte našu jedinstvenu kolekciju ručno izrađenih svijeća, savršenih za svaku prigodu.",
        "en": "Discover our unique collection of handcrafted candles, perfect for any occasion.",
        "it": "Scopri la nostra collezione unica di candele artigianali, perfette per ogni occasione.",
        "sl": "Odkrijte našo edinstveno zbirko ročno izdelanih sveč, popolnih za vsako priložnost.",
    },
)


def get_setting(key: str) -> Optional[dict]:
    return to_str_id(db["setting"].find_one({"key": key}))


def get_value(key: str, default: Optional[str] = None) -> Optional[str]:
    doc = db["setting"].find_one({"key": key})
    return doc["value"] if doc else default


def list_settings() -> List[dict]:
    return [to_str_id(s) for s in db["setting"].find().sort("key", 1)]


def set_value(key: str, value: str) -> dict:
    """Create or overwrite a setting."""
    now = now_utc()
    db["setting"].update_one(
        {"key": key},
        {"$set": {"value": value, "updated_at": now}, "$setOnInsert": {"created_at": now}},
        upsert=True,
    )
    return get_setting(key)


def delete_setting(key: str) -> bool:
    return db["setting"].delete_one({"key": key}).deleted_count > 0


def _as_float(key: str, default: float) -> float:
    raw = get_value(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Setting %s is not a number: %r", key, raw)
        return default


def get_shipping_settings() -> ShippingSettings:
    defaults = ShippingSettings()
    return ShippingSettings(
        free_shipping_threshold=_as_float(FREE_SHIPPING_THRESHOLD, defaults.free_shipping_threshold),
        standard_shipping_rate=_as_float(STANDARD_SHIPPING_RATE, defaults.standard_shipping_rate),
    )


def save_shipping_settings(settings: ShippingSettings) -> ShippingSettings:
    set_value(FREE_SHIPPING_THRESHOLD, str(settings.free_shipping_threshold))
    set_value(STANDARD_SHIPPING_RATE, str(settings.standard_shipping_rate))
    return get_shipping_settings()


def get_hero_settings() -> HeroSettings:
    raw = get_value(HERO)
    if not raw:
        return DEFAULT_HERO
    try:
        return HeroSettings.model_validate_json(raw)
    except ValidationError as e:
        logger.warning("Stored hero settings are invalid, using defaults: %s", e)
        return DEFAULT_HERO


def save_hero_settings(hero: HeroSettings) -> HeroSettings:
    set_value(HERO, hero.model_dump_json())
    return hero


def get_contact_settings() -> ContactSettings:
    return ContactSettings(**{field: get_value(key, "") for field, key in CONTACT_KEYS.items()})


def save_contact_settings(contact: ContactSettings) -> ContactSettings:
    for field, key in CONTACT_KEYS.items():
        set_value(key, getattr(contact, field))
    return get_contact_settings()


def get_instagram_images() -> List[InstagramImage]:
    raw = get_value(INSTAGRAM_MANUAL_IMAGES)
    if not raw:
        return []
    try:
        return [InstagramImage(**img) for img in json.loads(raw)]
    except (ValueError, TypeError, ValidationError) as e:
        logger.error("Could not parse Instagram images: %s", e)
        return []


def save_instagram_images(images: List[InstagramImage]) -> None:
    set_value(INSTAGRAM_MANUAL_IMAGES, json.dumps([img.model_dump() for img in images]))
