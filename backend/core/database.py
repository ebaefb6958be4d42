# backend/core/database.py

import logging
from typing import Iterator, Optional

from pymongo import ASCENDING, DESCENDING, TEXT, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from .config import get_settings

logger = logging.getLogger(__name__)

ORDERS_COLLECTION = "orders"
PRODUCTS_COLLECTION = "parent_products"
VENDORS_COLLECTION = "vendors"

_client: Optional[MongoClient] = None


def get_client() -> MongoClient:
    """Create the shared MongoClient on first use."""
    global _client
    if _client is None:
        settings = get_settings()
        _client = MongoClient(
            settings.mongodb_uri,
            maxPoolSize=settings.mongodb_max_pool_size,
            serverSelectionTimeoutMS=settings.mongodb_server_selection_timeout_ms,
            tz_aware=True,
        )
        logger.info("MongoDB client created")
    return _client


def get_database() -> Database:
    return get_client()[get_settings().mongodb_db_name]


def get_db() -> Iterator[Database]:
    """FastAPI dependency to provide the document database."""
    yield get_database()


def ensure_indexes(db: Database) -> None:
    """Create the indexes the analytics pipelines and auth lookups rely on."""
    orders = db[ORDERS_COLLECTION]
    orders.create_index([("payment_at", DESCENDING)])
    orders.create_index([("cart_item.product", ASCENDING)])
    orders.create_index([("payment_at", DESCENDING), ("cart_item.product", ASCENDING)])

    products = db[PRODUCTS_COLLECTION]
    products.create_index([("vendor", ASCENDING)])
    products.create_index([("vendor", ASCENDING), ("name", ASCENDING)])
    products.create_index([("name", TEXT)])

    vendors = db[VENDORS_COLLECTION]
    vendors.create_index([("name", ASCENDING)])
    vendors.create_index([("email", ASCENDING)], unique=True, sparse=True)
    vendors.create_index([("name", TEXT)])

    logger.info("MongoDB indexes ensured")


def ping_database(db: Optional[Database] = None) -> bool:
    try:
        (db if db is not None else get_database()).command("ping")
        return True
    except PyMongoError as e:
        logger.warning(f"MongoDB ping failed: {e}")
        return False


def close_database() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("MongoDB connection closed")
