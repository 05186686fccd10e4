"""
Database helpers

MongoDB connection plus the small set of helpers every route module uses.
Collections are named after the lowercase schema class:
- User -> "user"
- CartItem -> "cartitem"
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient, ReturnDocument

from config import DATABASE_NAME, DATABASE_URL

logger = logging.getLogger(__name__)

_client = None
db = None

if DATABASE_URL and DATABASE_NAME:
    try:
        _client = MongoClient(DATABASE_URL)
        db = _client[DATABASE_NAME]
    except Exception as e:
        logger.error("Could not connect to MongoDB: %s", e)
        db = None

# (collection, field) pairs that must stay unique
UNIQUE_FIELDS = [
    ("user", "username"),
    ("user", "email"),
    ("setting", "key"),
    ("page", "type"),
    ("subscriber", "email"),
    ("pagevisit", "path"),
    ("verificationtoken", "token"),
    ("session", "token"),
]


def _require_db():
    if db is None:
        raise Exception("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")
    return db


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # pymongo hands back naive datetimes that are already UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a single document with timestamps"""
    database = _require_db()
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = data.copy()
    data_dict["created_at"] = now_utc()
    data_dict["updated_at"] = now_utc()
    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None) -> List[dict]:
    """Get documents from collection"""
    database = _require_db()
    cursor = database[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def next_sequence(name: str) -> int:
    """Monotonic counter kept in the "counter" collection."""
    doc = _require_db()["counter"].find_one_and_update(
        {"_id": name},
        {"$inc": {"value": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return int(doc["value"])


def ensure_indexes():
    database = _require_db()
    for collection_name, field in UNIQUE_FIELDS:
        database[collection_name].create_index([(field, ASCENDING)], unique=True)


def oid(value: Any) -> Optional[ObjectId]:
    """ObjectId for a path/body id, or None when it can't be one."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def find_by_id(collection_name: str, doc_id: Any) -> Optional[dict]:
    _id = oid(doc_id)
    if _id is None:
        return None
    return _require_db()[collection_name].find_one({"_id": _id})


def to_str_id(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    d = dict(doc)
    if d.get("_id") is not None:
        d["id"] = str(d.pop("_id"))
    d.pop("password_hash", None)
    return d
