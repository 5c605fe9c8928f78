"""
Accounts and sessions

Sessions live in the "session" collection. The cookie only carries a signed
token with the session id; the user id, name and role stay server-side.
"""
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import structlog
from bson import ObjectId
from fastapi import Depends, Request
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

import database
from database import SESSION_TTL_MINUTES, create_document
from errors import AuthRequired, ValidationError
from schemas import User as UserSchema

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_ALG = "HS256"
SESSION_COOKIE = os.getenv("SESSION_COOKIE", "trendprints_session")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)

logger = structlog.get_logger(__name__)


# --------------------- Passwords ---------------------

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # malformed or empty stored hash
        return False


# --------------------- Users ---------------------

def find_user(db: Database, user_id: str) -> Optional[Dict[str, Any]]:
    if not user_id or not ObjectId.is_valid(user_id):
        return None
    return db["user"].find_one({"_id": ObjectId(user_id)})


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def register_user(db: Database, username: str, email: str, password: str, role: str = "user") -> Dict[str, Any]:
    email = normalize_email(email)
    if not username or not email or not password:
        raise ValidationError("All fields are required")
    if db["user"].find_one({"email": email}):
        raise ValidationError("Email already exists")
    try:
        user = UserSchema(username=username, email=email, password_hash=hash_password(password), role=role)
    except SchemaError:
        raise ValidationError("Invalid email")
    try:
        user_id = create_document("user", user.model_dump(exclude={"id", "created_at"}), using=db)
    except DuplicateKeyError:
        raise ValidationError("Email already exists")
    logger.info("user_registered", user_id=user_id, role=role)
    return {"_id": ObjectId(user_id), "username": user.username, "email": user.email, "role": role}


def authenticate(db: Database, email: str, password: str) -> Dict[str, Any]:
    email = normalize_email(email)
    user = db["user"].find_one({"email": email}) if email else None
    if not user or not verify_password(password or "", user.get("password_hash", "")):
        raise ValidationError("Invalid email or password")
    return user


# --------------------- Sessions ---------------------

class SessionContext(BaseModel):
    session_id: str
    user_id: str
    username: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def create_token(data: dict, expires_minutes: int = SESSION_TTL_MINUTES) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALG)


def create_session(db: Database, user: Dict[str, Any]) -> str:
    """Open a session for the user and return the cookie token."""
    session_id = create_document("session", {
        "user_id": str(user["_id"]),
        "username": user.get("username", ""),
        "role": user.get("role", "user"),
    }, using=db)
    return create_token({"sid": session_id})


def _session_id(token: Optional[str]) -> Optional[str]:
    if not token:
        return None
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])
    except JWTError:
        return None
    sid = payload.get("sid")
    if not sid or not ObjectId.is_valid(sid):
        return None
    return sid


def resolve_session(db: Database, token: Optional[str]) -> Optional[SessionContext]:
    sid = _session_id(token)
    if sid is None:
        return None
    doc = db["session"].find_one({"_id": ObjectId(sid)})
    if doc is None:
        return None
    return SessionContext(
        session_id=sid,
        user_id=doc["user_id"],
        username=doc.get("username", ""),
        role=doc.get("role", "user"),
    )


def destroy_session(db: Database, token: Optional[str]) -> None:
    sid = _session_id(token)
    if sid is not None:
        db["session"].delete_one({"_id": ObjectId(sid)})


# --------------------- Dependencies ---------------------

def get_session(request: Request) -> Optional[SessionContext]:
    """Resolve the caller's session; an unavailable store means anonymous."""
    if database.db is None:
        return None
    try:
        return resolve_session(database.db, request.cookies.get(SESSION_COOKIE))
    except PyMongoError:
        logger.exception("session_lookup_failed")
        return None


def require_session(session: Optional[SessionContext] = Depends(get_session)) -> SessionContext:
    if session is None:
        raise AuthRequired()
    return session
