"""
MongoDB Service - document operations for each collection.

Collections in this database:
1. salary_requests - salary benchmark requests submitted by users
2. kb_vectors      - knowledge-base chunks with embeddings
3. cache_results   - cached AI results with expiry

Vector and keyword search run either on Atlas ($vectorSearch / $search)
or locally (numpy cosine similarity / classic $text index), chosen by the
SEARCH_BACKEND setting.
"""

import hashlib
import json
import logging
from datetime import datetime, timedelta
from typing import Optional, List, Any

import numpy as np
from bson import ObjectId
from bson.errors import InvalidId
from pydantic import ValidationError
from pymongo.collection import Collection

from karirkit.core.config import get_settings
from karirkit.core.errors import ValidationFailed, SearchError, format_validation_issues
from karirkit.db.mongodb import get_collection, COLLECTIONS
from karirkit.schemas.schemas import SalaryRequestCreate, CacheType

logger = logging.getLogger(__name__)


# ============================================================
# HELPER: Convert ObjectId to string for JSON serialization
# ============================================================

def serialize_doc(doc: dict) -> dict:
    """Convert MongoDB document to JSON-serializable dict."""
    if doc is None:
        return None
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


def serialize_docs(docs: list) -> list:
    """Convert list of MongoDB documents to JSON-serializable list."""
    return [serialize_doc(doc) for doc in docs]


def to_object_id(value: str) -> Optional[ObjectId]:
    """Parse a hex id, None when malformed."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


# ============================================================
# SALARY REQUESTS COLLECTION
# ============================================================

class SalaryRequestService:
    """
    Stores the salary benchmark requests users submit.
    A stored request is the input of the benchmark pipeline.
    """

    def __init__(self, collection: Collection = None):
        self.collection: Collection = collection if collection is not None else get_collection(COLLECTIONS["salary_requests"])

    def create(self, user_id: str, data: dict) -> dict:
        """
        Validate and insert a request.

        Returns:
            The stored document with "_id" as string
        """
        try:
            request = SalaryRequestCreate.model_validate(data)
        except ValidationError as e:
            raise ValidationFailed(format_validation_issues(e.errors())) from e

        doc = {
            **request.model_dump(),
            "user_id": user_id,
            "created_at": datetime.utcnow()
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_doc(doc)

    def get_by_id(self, request_id: str) -> Optional[dict]:
        """Fetch a request; None for unknown or malformed ids."""
        oid = to_object_id(request_id)
        if oid is None:
            return None
        return serialize_doc(self.collection.find_one({"_id": oid}))

    def get_by_user(self, user_id: str, limit: int = 10) -> List[dict]:
        """Latest requests of a user, newest first."""
        cursor = self.collection.find({"user_id": user_id}).sort("created_at", -1).limit(limit)
        return serialize_docs(list(cursor))


# ============================================================
# KB VECTORS COLLECTION
# Knowledge-base chunks: text + embedding + provenance
# ============================================================

# Fields returned by searches. Chunks written by external ingestion use
# chunkText / sourceFile instead of text / source.
KB_PROJECTION = {
    "text": 1,
    "chunkText": 1,
    "source": 1,
    "sourceFile": 1,
    "loc": 1,
    "metadata": 1
}


class KBVectorService:
    """
    Storage and raw retrieval over kb_vectors.

    knn_search returns documents with "score" (vector similarity);
    keyword_search returns documents with "keywordScore".
    """

    def __init__(self, collection: Collection = None, backend: str = None):
        settings = get_settings()
        self.collection: Collection = collection if collection is not None else get_collection(COLLECTIONS["kb_vectors"])
        self.backend = backend or settings.search_backend
        self.vector_index = settings.atlas_vector_index_name
        self.search_index = settings.atlas_search_index_name

    def insert_many(self, docs: List[dict]) -> List[str]:
        if not docs:
            return []
        result = self.collection.insert_many(docs)
        return [str(_id) for _id in result.inserted_ids]

    def insert_one(self, doc: dict) -> dict:
        result = self.collection.insert_one(doc)
        return {**doc, "_id": str(result.inserted_id)}

    def count(self) -> int:
        return self.collection.count_documents({})

    def delete_by_source(self, source: str) -> int:
        """Remove every chunk of a source document."""
        result = self.collection.delete_many({"$or": [{"source": source}, {"sourceFile": source}]})
        return result.deleted_count

    # --------------------------------------------------------
    # Vector search
    # --------------------------------------------------------

    def knn_search(
        self,
        embedding: List[float],
        k: int = 15,
        min_score: Optional[float] = None,
        num_candidates: Optional[int] = None
    ) -> List[dict]:
        """
        Nearest chunks to an embedding.

        Args:
            embedding: query vector
            k: number of results
            min_score: drop results scoring below this (ignored when <= 0)
            num_candidates: Atlas candidate pool, default max(k * 20, 150)
        """
        if self.backend == "local":
            results = self._knn_local(embedding, k, min_score)
        else:
            results = self._knn_atlas(embedding, k, min_score, num_candidates)

        if results:
            avg_score = sum(r.get("score") or 0 for r in results) / len(results)
            logger.info("Vector search: %d results, avg score: %.4f", len(results), avg_score)
        return results

    def _knn_atlas(self, embedding, k, min_score, num_candidates) -> List[dict]:
        candidates = num_candidates or max(k * 20, 150)
        pipeline = [
            {
                "$vectorSearch": {
                    "index": self.vector_index,
                    "path": "embedding",
                    "queryVector": list(embedding),
                    "numCandidates": candidates,
                    "limit": k
                }
            },
            {
                "$project": {
                    **KB_PROJECTION,
                    "score": {"$meta": "vectorSearchScore"}
                }
            }
        ]
        if min_score and min_score > 0:
            pipeline.append({"$match": {"score": {"$gte": min_score}}})

        return list(self.collection.aggregate(pipeline))

    def _knn_local(self, embedding, k, min_score) -> List[dict]:
        query = np.asarray(embedding, dtype=float)
        query_norm = np.linalg.norm(query)
        if query_norm == 0:
            return []

        docs = []
        vectors = []
        for doc in self.collection.find({"embedding": {"$exists": True}}, {**KB_PROJECTION, "embedding": 1}):
            vector = doc.pop("embedding", None)
            if not vector or len(vector) != len(query):
                continue
            docs.append(doc)
            vectors.append(vector)

        if not docs:
            return []

        matrix = np.asarray(vectors, dtype=float)
        norms = np.linalg.norm(matrix, axis=1)
        norms[norms == 0] = 1.0
        scores = matrix @ query / (norms * query_norm)

        order = np.argsort(-scores, kind="stable")[:k]
        results = []
        for idx in order:
            score = float(scores[idx])
            if min_score and min_score > 0 and score < min_score:
                continue
            results.append({**docs[idx], "score": score})
        return results

    # --------------------------------------------------------
    # Keyword search
    # --------------------------------------------------------

    def keyword_search(self, keywords: List[str], limit: int) -> List[dict]:
        """
        Full-text search over chunk text.

        Raises:
            SearchError if the search index is unavailable
        """
        query = " ".join(k for k in keywords if k)
        if not query.strip():
            return []

        try:
            if self.backend == "local":
                cursor = self.collection.find(
                    {"$text": {"$search": query}},
                    {**KB_PROJECTION, "keywordScore": {"$meta": "textScore"}}
                ).sort([("keywordScore", {"$meta": "textScore"})]).limit(limit)
                return list(cursor)

            pipeline = [
                {
                    "$search": {
                        "index": self.search_index,
                        "text": {
                            "query": query,
                            "path": ["text", "chunkText"],
                            "fuzzy": {"maxEdits": 1}
                        }
                    }
                },
                {"$limit": limit},
                {
                    "$project": {
                        **KB_PROJECTION,
                        "keywordScore": {"$meta": "searchScore"}
                    }
                }
            ]
            return list(self.collection.aggregate(pipeline))
        except Exception as e:
            raise SearchError(f"Keyword search failed: {e}") from e


# ============================================================
# CACHE RESULTS COLLECTION
# AI results keyed by the preferences that produced them
# ============================================================

class CacheService:
    """
    Caches expensive AI results with a time-to-live.
    An entry is only served while expires_at is in the future.
    """

    def __init__(self, collection: Collection = None):
        self.collection: Collection = collection if collection is not None else get_collection(COLLECTIONS["cache_results"])
        self.ttls = get_settings().cache_ttls

    @staticmethod
    def _check_type(cache_type) -> str:
        try:
            return CacheType(cache_type).value
        except ValueError:
            raise ValidationFailed(f"Unknown cache type '{cache_type}'")

    @staticmethod
    def generate_cache_key(cache_type: str, preferences: dict) -> str:
        """SHA-256 of the type and the preferences with sorted keys."""
        payload = json.dumps(preferences, sort_keys=True, separators=(",", ":"), default=str)
        return hashlib.sha256(f"{cache_type}:{payload}".encode()).hexdigest()

    def get_cached(self, cache_type: str, preferences: dict) -> Optional[Any]:
        cache_type = self._check_type(cache_type)
        cache_key = self.generate_cache_key(cache_type, preferences)
        now = datetime.utcnow()

        cached = self.collection.find_one({
            "cache_key": cache_key,
            "cache_type": cache_type,
            "expires_at": {"$gt": now}
        })

        if cached:
            self.collection.update_one(
                {"_id": cached["_id"]},
                {
                    "$set": {"last_accessed_at": now},
                    "$inc": {"hit_count": 1}
                }
            )
            logger.info(
                "Cache HIT for %s (key: %s..., hits: %d)",
                cache_type, cache_key[:16], cached.get("hit_count", 0) + 1
            )
            return cached["result"]

        logger.info("Cache MISS for %s (key: %s...)", cache_type, cache_key[:16])
        return None

    def set_cache(
        self,
        cache_type: str,
        preferences: dict,
        result: Any,
        ttl_hours: Optional[float] = None
    ) -> str:
        """
        Upsert a cache entry.

        Returns:
            The cache key
        """
        cache_type = self._check_type(cache_type)
        if ttl_hours is None:
            ttl_hours = self.ttls[cache_type]

        cache_key = self.generate_cache_key(cache_type, preferences)
        now = datetime.utcnow()
        expires_at = now + timedelta(hours=ttl_hours)

        self.collection.update_one(
            {"cache_key": cache_key, "cache_type": cache_type},
            {
                "$set": {
                    "cache_key": cache_key,
                    "cache_type": cache_type,
                    "preferences": preferences,
                    "result": result,
                    "last_accessed_at": now,
                    "expires_at": expires_at
                },
                "$setOnInsert": {
                    "created_at": now,
                    "hit_count": 0
                }
            },
            upsert=True
        )
        logger.info("Cache SAVED for %s (key: %s..., expires: %sh)", cache_type, cache_key[:16], ttl_hours)
        return cache_key

    def clear_expired(self) -> int:
        """Delete entries past their expiry. Safe to run periodically."""
        result = self.collection.delete_many({"expires_at": {"$lt": datetime.utcnow()}})
        if result.deleted_count > 0:
            logger.info("Cleared %d expired cache entries", result.deleted_count)
        return result.deleted_count

    def get_stats(self) -> List[dict]:
        """Entries and hits per cache type."""
        pipeline = [
            {
                "$group": {
                    "_id": "$cache_type",
                    "total_entries": {"$sum": 1},
                    "total_hits": {"$sum": "$hit_count"},
                    "avg_hits": {"$avg": "$hit_count"}
                }
            },
            {"$sort": {"_id": 1}}
        ]
        return [
            {
                "cache_type": row["_id"],
                "total_entries": row.get("total_entries", 0),
                "total_hits": row.get("total_hits", 0),
                "avg_hits": float(row.get("avg_hits") or 0)
            }
            for row in self.collection.aggregate(pipeline)
        ]

    def invalidate_by_type(self, cache_type: str) -> int:
        cache_type = self._check_type(cache_type)
        result = self.collection.delete_many({"cache_type": cache_type})
        logger.info("Invalidated %d cache entries for %s", result.deleted_count, cache_type)
        return result.deleted_count

    def clear_user_cache(self, user_id: str) -> int:
        """Delete entries whose preferences belong to a user."""
        result = self.collection.delete_many({"preferences.user_id": user_id})
        logger.info("Cleared %d cache entries for user %s", result.deleted_count, user_id)
        return result.deleted_count
