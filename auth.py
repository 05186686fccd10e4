import logging
import secrets
from datetime import timedelta
from typing import Optional

from fastapi import Depends, Header, HTTPException
from passlib.context import CryptContext

from config import SESSION_TTL_DAYS, VERIFICATION_TTL_HOURS
from database import as_utc, db, find_by_id, now_utc
from schemas import Session, VerificationToken

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        logger.warning("Stored password hash has an unknown format")
        return False


# Simple token store in DB (collection: session)
# token docs: { token, user_id, expires_at }

def create_session(user_id: str) -> str:
    token = secrets.token_urlsafe(32)
    session = Session(token=token, user_id=user_id, expires_at=now_utc() + timedelta(days=SESSION_TTL_DAYS))
    db["session"].insert_one(session.model_dump())
    return token


def delete_session(token: str) -> None:
    db["session"].delete_one({"token": token})


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None


def _user_for_token(token: str) -> Optional[dict]:
    session = db["session"].find_one({"token": token})
    if not session:
        return None
    if as_utc(session.get("expires_at")) < now_utc():
        db["session"].delete_one({"_id": session["_id"]})
        return None
    return find_by_id("user", session["user_id"])


def optional_user(authorization: Optional[str] = Header(None)) -> Optional[dict]:
    token = _bearer_token(authorization)
    if not token:
        return None
    return _user_for_token(token)


def current_user(authorization: Optional[str] = Header(None)) -> dict:
    token = _bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")
    user = _user_for_token(token)
    if not user:
        raise HTTPException(status_code=401, detail="Session expired")
    return user


def admin_user(user: dict = Depends(current_user)) -> dict:
    if not user.get("is_admin"):
        raise HTTPException(status_code=403, detail="Unauthorized")
    return user


def is_admin(user: Optional[dict]) -> bool:
    return bool(user and user.get("is_admin"))


def require_self_or_admin(user: dict, user_id: str) -> None:
    if str(user["_id"]) != user_id and not user.get("is_admin"):
        raise HTTPException(status_code=403, detail="Unauthorized")


# Email verification tokens

def issue_verification_token(user_id: str) -> str:
    token = secrets.token_hex(32)
    record = VerificationToken(
        user_id=user_id,
        token=token,
        expires_at=now_utc() + timedelta(hours=VERIFICATION_TTL_HOURS),
    )
    db["verificationtoken"].insert_one(record.model_dump())
    return token


def consume_verification_token(token: str) -> dict:
    """Mark the token's user as verified and return the user.

    Expired tokens are deleted before the request is rejected.
    """
    record = db["verificationtoken"].find_one({"token": token})
    if not record:
        raise HTTPException(status_code=400, detail="Invalid or expired verification token")
    db["verificationtoken"].delete_one({"_id": record["_id"]})
    if as_utc(record["expires_at"]) < now_utc():
        raise HTTPException(status_code=400, detail="Verification token has expired")
    user = find_by_id("user", record["user_id"])
    if not user:
        raise HTTPException(status_code=400, detail="User not found")
    db["user"].update_one({"_id": user["_id"]}, {"$set": {"email_verified": True, "updated_at": now_utc()}})
    user["email_verified"] = True
    return user
