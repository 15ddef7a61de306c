"""
MongoDB access for the reflection journal.

The client is created once per application by ``connect`` and handed to
request handlers through the ``get_db`` dependency. Collection names match the
lowercased schema class names in ``schemas.py`` (Reflection -> "reflection").
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException, Request
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

logger = logging.getLogger(__name__)


def connect(url: str, name: str) -> Database:
    client = MongoClient(url, serverSelectionTimeoutMS=5000, connectTimeoutMS=10000, maxPoolSize=10)
    logger.info("MongoDB client created for database %s", name)
    return client[name]


def init_indexes(db: Database) -> None:
    db["user"].create_index("email", unique=True)
    db["reflection"].create_index("user_id")
    db["reflection"].create_index("date")
    db["reflection"].create_index([("created_at", DESCENDING)])
    db["prompt"].create_index("user_id")
    logger.info("Indexes ensured on %s", db.name)


def get_db(request: Request) -> Database:
    return request.app.state.db


def to_object_id(value: str) -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail="Invalid id")


def create_document(db: Database, collection_name: str, data: Dict[str, Any]) -> str:
    now = datetime.utcnow()
    doc = {**data, "created_at": data.get("created_at", now)}
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[List[Tuple[str, int]]] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def get_reflections(db: Database, user_id: ObjectId, since: Optional[datetime] = None, newest_first: bool = False):
    filt: Dict[str, Any] = {"user_id": user_id}
    if since is not None:
        filt["created_at"] = {"$gte": since}
    order = DESCENDING if newest_first else ASCENDING
    return get_documents(db, "reflection", filt, sort=[("created_at", order)])
