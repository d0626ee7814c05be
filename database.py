"""
MongoDB access for RoomBuddy

Collections:
- user: accounts
- hostel: accommodation listings with embedded reviews
- roommate: roommate profiles (one per user)
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException, Request
from pydantic import BaseModel
from pymongo import ASCENDING, GEOSPHERE, MongoClient
from pymongo.database import Database

from config import Settings

logger = logging.getLogger(__name__)

USERS = "user"
HOSTELS = "hostel"
ROOMMATES = "roommate"


def connect(settings: Settings) -> MongoClient:
    # MongoClient connects lazily, nothing is sent to the server yet
    return MongoClient(settings.database_url, tz_aware=False)


def get_db(request: Request) -> Database:
    return request.app.state.db


def ensure_indexes(db: Database) -> None:
    db[USERS].create_index([("email", ASCENDING)], unique=True)
    db[HOSTELS].create_index([("location", GEOSPHERE)])
    db[HOSTELS].create_index([("createdAt", ASCENDING)])
    db[ROOMMATES].create_index([("location", GEOSPHERE)])
    db[ROOMMATES].create_index([("user", ASCENDING)])
    logger.info("Indexes ensured on %s", db.name)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True)
    doc = dict(data)
    now = utcnow()
    doc["createdAt"] = now
    doc["updatedAt"] = now
    res = db[collection_name].insert_one(doc)
    return str(res.inserted_id)


def to_obj_id(id_str: str, not_found: str = "Resource not found") -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=404, detail=not_found)


def _public_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return to_public(value)
    if isinstance(value, list):
        return [_public_value(v) for v in value]
    return value


def to_public(doc: Optional[Dict]) -> Optional[Dict]:
    if not doc:
        return doc
    d = {k: _public_value(v) for k, v in doc.items() if k != "passwordHash"}
    if "_id" in d:
        d["id"] = d.pop("_id")
    return d
