"""
MongoDB connection and document helpers

The connection is configured through DATABASE_URL and DATABASE_NAME. When
DATABASE_URL is not set, `db` stays None and every request that needs the
database fails with UpstreamFailure.
"""
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from errors import InvalidInput, UpstreamFailure

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "storefront")

db: Optional[Database] = None

if DATABASE_URL:
    _client = MongoClient(DATABASE_URL, tz_aware=True)
    db = _client[DATABASE_NAME]
else:
    logger.warning("DATABASE_URL is not set, database access is disabled")


def get_db() -> Database:
    if db is None:
        raise UpstreamFailure("Database not available", "DATABASE_URL is not set")
    return db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_document(collection: Collection, data: Union[BaseModel, dict]) -> str:
    """Insert a document stamped with created_at/updated_at and return its id."""
    if isinstance(data, BaseModel):
        doc = data.model_dump()
    else:
        doc = dict(data)
    now = utcnow()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    result = collection.insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection: Collection, filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None) -> List[dict]:
    cursor = collection.find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return [to_str_id(doc) for doc in cursor]


def to_str_id(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return doc
    d = dict(doc)
    if d.get("_id") is not None:
        d["id"] = str(d.pop("_id"))
    return d


def normalize_id(id_str: str) -> str:
    """Canonical string form of an ObjectId; other strings are returned unchanged."""
    if ObjectId.is_valid(id_str):
        return str(ObjectId(id_str))
    return id_str


def ensure_object_id(id_str: str) -> ObjectId:
    if isinstance(id_str, ObjectId):
        return id_str
    if not ObjectId.is_valid(id_str):
        raise InvalidInput("Invalid ID format", id_str)
    return ObjectId(id_str)
