"""
MongoDB access helpers.

The client is created lazily from DATABASE_URL / DATABASE_NAME. Route handlers
receive the database through the ``get_db`` dependency so tests can swap in an
in-memory database.
"""
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import settings
from errors import DatabaseUnavailableError

logger = logging.getLogger(__name__)

client: Optional[MongoClient] = None
db: Optional[Database] = None

if settings.database_url and settings.database_name:
    client = MongoClient(settings.database_url)
    db = client[settings.database_name]


def get_db() -> Database:
    if db is None:
        raise DatabaseUnavailableError()
    return db


def ensure_indexes(database: Database) -> None:
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["order"].create_index([("user_id", ASCENDING), ("created_at", ASCENDING)])
    database["order"].create_index([("status", ASCENDING)])
    database["medicine"].create_index([("category", ASCENDING)])
    logger.info("indexes ensured on %s", database.name)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id string; None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def serialize(doc: Optional[dict]) -> Optional[dict]:
    """Make a stored document JSON friendly (ObjectId -> str)."""
    if doc is None:
        return None
    out = dict(doc)
    if "_id" in out:
        out["_id"] = str(out["_id"])
    return out


def create_document(database: Database, collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document with created_at / updated_at timestamps; returns the new id."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)

    stamp = now_utc()
    data_dict.setdefault("created_at", stamp)
    data_dict.setdefault("updated_at", stamp)

    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(
    database: Database,
    collection_name: str,
    filter_dict: Optional[dict] = None,
    sort: Optional[list] = None,
    limit: Optional[int] = None,
) -> List[dict]:
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return [serialize(d) for d in cursor]
