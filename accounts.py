import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, EmailStr, Field

import mailer
from auth import (
    admin_user,
    consume_verification_token,
    create_session,
    current_user,
    delete_session,
    hash_password,
    issue_verification_token,
    require_self_or_admin,
    verify_password,
)
from database import create_document, db, find_by_id, now_utc, oid, to_str_id
from pricing import money
from schemas import User as UserSchema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    language: Optional[str] = None


class UserLogin(BaseModel):
    username: str
    password: str


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str


class DiscountUpdate(BaseModel):
    discount_amount: float = Field(0, ge=0)
    discount_minimum_order: float = Field(0, ge=0)
    discount_expiry_date: Optional[datetime] = None


def _update_profile(user_id: str, payload: ProfileUpdate) -> dict:
    _id = oid(user_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("email"):
        other = db["user"].find_one({"email": changes["email"]})
        if other and other["_id"] != _id:
            raise HTTPException(status_code=400, detail="Email already in use")
    elif "email" in changes:
        changes.pop("email")
    if changes:
        changes["updated_at"] = now_utc()
        db["user"].update_one({"_id": _id}, {"$set": changes})
    return to_str_id(find_by_id("user", user_id))


@router.post("/register", status_code=201)
def register(user: UserCreate):
    if db["user"].find_one({"username": user.username}):
        raise HTTPException(status_code=400, detail="Korisničko ime već postoji")
    if db["user"].find_one({"email": user.email}):
        raise HTTPException(status_code=400, detail="Email adresa već postoji")

    user_doc = UserSchema(
        username=user.username,
        email=user.email,
        password_hash=hash_password(user.password),
        first_name=user.first_name,
        last_name=user.last_name,
    )
    user_id = create_document("user", user_doc)
    token = issue_verification_token(user_id)
    ok, error = mailer.send_verification_email(user.email, user.username, token, user.language)
    if not ok:
        logger.warning("Verification email for %s not sent: %s", user.email, error)
    return {"message": "registration_success_verify_email", "user_id": user_id}


@router.get("/verify-email/{token}")
def verify_email(token: str):
    user = consume_verification_token(token)
    session_token = create_session(str(user["_id"]))
    return {"message": "Email verified successfully", "token": session_token, "user": to_str_id(user)}


@router.post("/login")
def login(creds: UserLogin):
    doc = db["user"].find_one({"username": creds.username})
    if not doc or not verify_password(creds.password, doc.get("password_hash")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not doc.get("email_verified"):
        raise HTTPException(status_code=403, detail="email_not_verified")
    return {"token": create_session(str(doc["_id"])), "user": to_str_id(doc)}


@router.post("/logout")
def logout(authorization: Optional[str] = Header(None)):
    if authorization and authorization.startswith("Bearer "):
        delete_session(authorization.split(" ", 1)[1])
    return {"message": "Logged out"}


@router.get("/user")
def me(user: dict = Depends(current_user)):
    return to_str_id(user)


@router.put("/user")
def update_me(payload: ProfileUpdate, user: dict = Depends(current_user)):
    return _update_profile(str(user["_id"]), payload)


@router.get("/users")
def list_users(admin: dict = Depends(admin_user)):
    return [to_str_id(u) for u in db["user"].find().sort("created_at", 1)]


@router.put("/users/{user_id}")
def update_user(user_id: str, payload: ProfileUpdate, user: dict = Depends(current_user)):
    require_self_or_admin(user, user_id)
    if not find_by_id("user", user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return _update_profile(user_id, payload)


@router.put("/users/{user_id}/password")
def change_password(user_id: str, payload: PasswordChange, user: dict = Depends(current_user)):
    require_self_or_admin(user, user_id)
    target = find_by_id("user", user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    if not payload.new_password:
        raise HTTPException(status_code=400, detail="Missing required fields")
    if not verify_password(payload.current_password, target.get("password_hash")):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    db["user"].update_one(
        {"_id": target["_id"]},
        {"$set": {"password_hash": hash_password(payload.new_password), "updated_at": now_utc()}},
    )
    return {"message": "Password updated successfully"}


@router.delete("/users/{user_id}")
def delete_user(user_id: str, user: dict = Depends(current_user)):
    require_self_or_admin(user, user_id)
    target = find_by_id("user", user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    db["session"].delete_many({"user_id": user_id})
    db["cartitem"].delete_many({"user_id": user_id})
    db["verificationtoken"].delete_many({"user_id": user_id})
    db["user"].delete_one({"_id": target["_id"]})
    logger.info("User %s deleted by %s", user_id, user["_id"])
    return {"message": "User deleted successfully"}


@router.get("/users/{user_id}/stats")
def user_stats(user_id: str, admin: dict = Depends(admin_user)):
    orders = list(db["order"].find({"user_id": user_id}))
    total_spent = sum(float(o.get("total", 0)) for o in orders)
    return {"user_id": user_id, "total_spent": money(total_spent), "order_count": len(orders)}


@router.post("/users/{user_id}/discount")
def set_discount(user_id: str, payload: DiscountUpdate, admin: dict = Depends(admin_user)):
    target = find_by_id("user", user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    db["user"].update_one(
        {"_id": target["_id"]},
        {"$set": {**payload.model_dump(), "updated_at": now_utc()}},
    )
    return to_str_id(find_by_id("user", user_id))
