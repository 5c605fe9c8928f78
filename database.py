"""
Database helpers

Connection is configured through DATABASE_URL and DATABASE_NAME. When either
is missing `db` stays None and handlers that need the store answer with a 500.
"""
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from errors import StoreError

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")
SESSION_TTL_MINUTES = int(os.getenv("SESSION_TTL_MINUTES", 60 * 24))

client: Optional[MongoClient] = None
db: Optional[Database] = None

if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL)
    db = client[DATABASE_NAME]


def get_db() -> Database:
    if db is None:
        raise StoreError("Database not configured")
    return db


def now() -> datetime:
    return datetime.now(timezone.utc)


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]], using: Optional[Database] = None) -> str:
    """Insert a document, stamping created_at/updated_at. Returns the new id as a string."""
    target = using if using is not None else get_db()
    if isinstance(data, BaseModel):
        doc = data.model_dump()
    else:
        doc = dict(data)
    stamp = now()
    doc["created_at"] = stamp
    doc["updated_at"] = stamp
    result = target[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[Dict[str, Any]] = None, limit: Optional[int] = None,
                  using: Optional[Database] = None) -> List[Dict[str, Any]]:
    target = using if using is not None else get_db()
    cursor = target[collection_name].find(filter_dict or {}).sort("created_at", -1)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def ensure_indexes(target: Database) -> None:
    target["user"].create_index([("email", ASCENDING)], unique=True)
    target["cart"].create_index([("user_id", ASCENDING)], unique=True)
    target["order"].create_index([("user_id", ASCENDING), ("created_at", -1)])
    target["session"].create_index([("created_at", ASCENDING)], expireAfterSeconds=SESSION_TTL_MINUTES * 60)
