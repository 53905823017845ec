"""
MongoDB access for the Closet Cater API.

The connection is configured through DATABASE_URL and DATABASE_NAME. Route handlers go
through the helpers below instead of touching collections directly, so tests can swap
``db`` for an in-memory database.
"""
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient

from errors import UnexpectedFailure

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

db = None
_client: Optional[MongoClient] = None


def connect_db():
    global db, _client
    if db is not None:
        return db
    if not DATABASE_URL or not DATABASE_NAME:
        logger.warning("DATABASE_URL or DATABASE_NAME not set, running without a database")
        return None
    _client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=30000)
    db = _client[DATABASE_NAME]
    ensure_indexes(db)
    logger.info("MongoDB connected: %s", DATABASE_NAME)
    return db


def disconnect_db():
    global db, _client
    if _client is None:
        return
    _client.close()
    _client = None
    db = None
    logger.info("MongoDB disconnected")


def ensure_indexes(database):
    database["user"].create_index([("email", ASCENDING)], unique=True)


def get_collection(name: str):
    if db is None:
        raise UnexpectedFailure("Database not configured")
    return db[name]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(id_str: str) -> Optional[ObjectId]:
    if not id_str:
        return None
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        return None


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    if isinstance(data, BaseModel):
        doc = data.model_dump()
    else:
        doc = dict(data)
    now = _now()
    doc["createdAt"] = now
    doc["updatedAt"] = now
    result = get_collection(collection_name).insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None) -> List[dict]:
    cursor = get_collection(collection_name).find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def find_by_id(collection_name: str, id_str: str) -> Optional[dict]:
    # malformed ids are treated the same as missing documents
    oid = to_object_id(id_str)
    if oid is None:
        return None
    return get_collection(collection_name).find_one({"_id": oid})


def save_document(collection_name: str, doc: dict) -> dict:
    doc["updatedAt"] = _now()
    get_collection(collection_name).replace_one({"_id": doc["_id"]}, doc)
    return doc


def serialize_doc(doc: Optional[Dict[str, Any]]):
    if not doc:
        return doc
    doc = dict(doc)
    _id = doc.get("_id")
    if isinstance(_id, ObjectId):
        doc["id"] = str(_id)
        del doc["_id"]
    # convert datetimes
    for k, v in list(doc.items()):
        if isinstance(v, datetime):
            doc[k] = v.isoformat()
    return doc
