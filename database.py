"""
MongoDB connection and shared document helpers.

The client is opened once by the application lifespan (see main.py) and
closed on shutdown. Route handlers get the database through the ``get_db``
dependency so tests can swap in another one.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

import config

logger = logging.getLogger(__name__)

client: Optional[MongoClient] = None
db: Optional[Database] = None


def connect(url: Optional[str] = None, name: Optional[str] = None) -> Optional[Database]:
    global client, db
    url = url or config.DATABASE_URL
    if not url:
        logger.warning("DATABASE_URL not set; database is unavailable")
        return None
    client = MongoClient(url)
    db = client[name or config.DATABASE_NAME]
    ensure_indexes(db)
    logger.info("MongoDB connected (%s)", db.name)
    return db


def close() -> None:
    global client, db
    if client is not None:
        client.close()
        logger.info("MongoDB connection closed")
    client = None
    db = None


def ensure_indexes(database: Database) -> None:
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["recipe"].create_index([("user_id", ASCENDING)])
    database["recipe"].create_index([("category", ASCENDING)])
    # One review per user per recipe
    database["review"].create_index(
        [("user_id", ASCENDING), ("recipe_id", ASCENDING)], unique=True
    )
    database["review"].create_index([("recipe_id", ASCENDING)])


def get_db() -> Database:
    if db is None:
        raise HTTPException(status_code=500, detail="Database not available")
    return db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_obj_id(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail="Invalid id")


def sanitize(doc: Optional[Dict], exclude: Sequence[str] = ("password_hash",)) -> Optional[Dict]:
    if not doc:
        return doc
    d = {k: v for k, v in doc.items() if k not in exclude}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d


def parse_sort(sort: str, allowed: Sequence[str]) -> List[Tuple[str, int]]:
    """Turn ``-created_at`` style sort strings into a pymongo sort spec."""
    direction = DESCENDING if sort.startswith("-") else ASCENDING
    field = sort.lstrip("-+")
    if field not in allowed:
        raise HTTPException(status_code=400, detail=f"Cannot sort by '{field}'")
    # _id breaks ties between records written in the same millisecond
    return [(field, direction), ("_id", direction)]


def paginate(
    collection: Collection,
    query: Dict[str, Any],
    page: int,
    limit: int,
    sort: List[Tuple[str, int]],
    projection: Optional[Dict[str, int]] = None,
) -> Tuple[List[Dict], int, int]:
    """Return one page of raw documents, the total match count and the page count."""
    total = collection.count_documents(query)
    cursor = (
        collection.find(query, projection)
        .sort(sort)
        .skip((page - 1) * limit)
        .limit(limit)
    )
    return list(cursor), total, math.ceil(total / limit)


def fetch_by_ids(
    database: Database, collection: str, ids: Sequence[str], fields: Sequence[str]
) -> Dict[str, Dict]:
    """Load a minimal projection of the referenced documents, keyed by string id."""
    obj_ids = [ObjectId(i) for i in set(ids) if i and ObjectId.is_valid(i)]
    if not obj_ids:
        return {}
    projection = {f: 1 for f in fields}
    return {
        str(d["_id"]): sanitize(d)
        for d in database[collection].find({"_id": {"$in": obj_ids}}, projection)
    }
