"""
MongoDB Connection Utility

MongoDB stores:
- Salary benchmark requests submitted by users
- Knowledge-base chunks with their embeddings (kb_vectors)
- Cached AI results with an expiry (cache_results)

The Atlas vector index ($vectorSearch) and Atlas search index ($search)
are managed in Atlas itself. The classic text index created here backs the
"local" search backend.
"""
import logging

from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo.errors import OperationFailure
from karirkit.core.config import get_settings

logger = logging.getLogger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(get_settings().mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the application database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[get_settings().mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    """Get a specific collection (see COLLECTIONS)."""
    db = get_mongo_db()
    return db[name]


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except Exception as e:
        logger.warning("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "salary_requests": "salary_requests",
    "kb_vectors": "kb_vectors",
    "cache_results": "cache_results"
}

TEXT_INDEX_NAME = "text_search_index"


def init_mongo_indexes():
    """
    Create indexes for better query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    # History lookups: newest requests of a user
    db[COLLECTIONS["salary_requests"]].create_index([
        ("user_id", ASCENDING),
        ("created_at", DESCENDING)
    ])

    # One cache entry per (key, type)
    db[COLLECTIONS["cache_results"]].create_index([
        ("cache_key", ASCENDING),
        ("cache_type", ASCENDING)
    ], unique=True)
    db[COLLECTIONS["cache_results"]].create_index("expires_at")

    db[COLLECTIONS["kb_vectors"]].create_index("source")
    create_text_index()

    logger.info("MongoDB indexes created successfully")


def create_text_index() -> str:
    """
    Weighted text index over KB chunk text, used by keyword search.

    A collection can hold a single text index; if one already exists
    under a different definition Mongo refuses, which is not fatal.
    """
    collection = get_collection(COLLECTIONS["kb_vectors"])
    try:
        return collection.create_index(
            [("text", "text"), ("chunkText", "text")],
            name=TEXT_INDEX_NAME,
            default_language="english",
            weights={"text": 10, "chunkText": 5}
        )
    except OperationFailure as e:
        if "already exists" in str(e) or e.code in (85, 86):
            logger.info("Text index already exists on %s, leaving it as is", COLLECTIONS["kb_vectors"])
            return TEXT_INDEX_NAME
        raise
