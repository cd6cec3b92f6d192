#!/usr/bin/env python3
"""
Standalone storage initialization script.
Creates the SQL tables or the MongoDB collections and indexes for the
configured STORAGE_BACKEND.
"""

import sys
import logging
from pathlib import Path

# Add parent directory to path to import app modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config import StorageBackend, settings

logging.basicConfig(level=logging.INFO, format=settings.log_format)
logger = logging.getLogger("mealbridge.init_db")

COLLECTIONS = ("tokens", "foods", "idempotency_keys", "logs")


def init_sql() -> bool:
    """Create tables through SQLAlchemy metadata"""
    from sqlalchemy import inspect
    from domain.models import engine, init_database

    try:
        init_database()
        tables = inspect(engine).get_table_names()
        logger.info("Tables present: %s", ", ".join(sorted(tables)))
        return True
    except Exception:
        logger.exception("Failed to initialize SQL storage")
        return False


def init_mongo() -> bool:
    """Create collections (indexes are ensured on connect)"""
    from adapters import mongo_adapter

    try:
        db = mongo_adapter.connect(settings.mongo_uri, settings.mongo_db_name)
        existing = set(db.list_collection_names())
        for name in COLLECTIONS:
            if name not in existing:
                db.create_collection(name)
                logger.info("Created '%s' collection", name)
        return True
    except Exception:
        logger.exception("Failed to initialize MongoDB storage")
        return False
    finally:
        mongo_adapter.close()


def main() -> int:
    logger.info("Initializing %s storage", settings.storage_backend.value)
    if settings.storage_backend == StorageBackend.MONGO:
        ok = init_mongo()
    else:
        ok = init_sql()
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
