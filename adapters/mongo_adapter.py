"""MongoDB adapter - connection management for the document-store backend.
"""

from typing import Optional
import logging
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from app.config import settings

logger = logging.getLogger("mealbridge.mongo")

_client: Optional[MongoClient] = None
_db: Optional[Database] = None


# ------------------ Connection ------------------
def get_db() -> Database:
    """Lazy init DB connection."""
    global _client, _db
    if _db is not None:
        return _db
    _client = MongoClient(settings.mongo_uri)
    _db = _client[settings.mongo_db_name]
    return _db


def connect(uri: str, db_name: str = "mealbridge") -> Database:
    """Open the client, verify the server answers, and create indexes."""
    global _client, _db
    try:
        _client = MongoClient(uri)
        _client.admin.command("ping")
        _db = _client[db_name]
        ensure_indexes(_db)
        logger.info("Connected to MongoDB (database: %s)", db_name)
        return _db
    except Exception:
        _client = None
        _db = None
        logger.exception("Could not initialize MongoDB client")
        raise


def ensure_indexes(db: Database) -> None:
    """Indexes backing the repository queries; _id already carries the unique keys."""
    db.foods.create_index([("created_at", DESCENDING)])
    db.logs.create_index([("date", ASCENDING), ("meal_type_id", ASCENDING)])


def close():
    """Close MongoDB connection."""
    global _client, _db
    try:
        if _client is not None:
            _client.close()
            logger.info("MongoDB client closed")
    finally:
        _client = None
        _db = None
