"""
Hybrid Retrieval Service

PURPOSE:
Rank knowledge-base chunks for a query by combining two signals:
1. Vector similarity of the query embedding to chunk embeddings
2. Keyword (full-text) relevance of the chunk text

HOW IT WORKS:
1. Fetch 2k candidates from vector search (min_score applied here only)
2. Fetch 2k candidates from keyword search
3. Scale each signal by its maximum (never dividing by less than 1)
4. combined = vector_weight * vector + keyword_weight * keyword
5. Sort by combined score and keep the top k

If keyword search is unavailable the ranking falls back to the vector
signal alone.
"""

import logging
from typing import List, Optional

from karirkit.core.config import get_settings
from karirkit.core.errors import ValidationFailed, SearchError
from karirkit.services.mongo_service import KBVectorService

logger = logging.getLogger(__name__)


# ============================================================
# SCORE FUSION
# ============================================================

def _score(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def fuse_results(
    vector_results: List[dict],
    keyword_results: List[dict],
    k: int,
    vector_weight: float,
    keyword_weight: float
) -> List[dict]:
    """
    Merge vector and keyword hits into one ranking.

    Vector hits carry "score", keyword hits carry "keywordScore". A chunk
    found by both gets the sum of its weighted signals. Entries found by
    vector search keep their raw "score"; keyword-only entries have none.

    Returns:
        Up to k dicts with the document fields plus "id", "combined_score",
        "vector_score" and "keyword_score", best first
    """
    merged = {}

    max_vector = max([_score(r.get("score")) for r in vector_results] + [1.0])
    for result in vector_results:
        doc_id = str(result["_id"])
        raw = _score(result.get("score"))
        entry = dict(result)
        entry.update({
            "id": doc_id,
            "combined_score": (raw / max_vector) * vector_weight,
            "vector_score": raw,
            "keyword_score": 0.0
        })
        merged[doc_id] = entry

    max_keyword = max([_score(r.get("keywordScore")) for r in keyword_results] + [1.0])
    for result in keyword_results:
        doc_id = str(result["_id"])
        raw = _score(result.get("keywordScore"))
        normalized = raw / max_keyword

        if doc_id in merged:
            existing = merged[doc_id]
            existing["combined_score"] += normalized * keyword_weight
            existing["keyword_score"] = raw
        else:
            entry = {key: value for key, value in result.items() if key != "keywordScore"}
            entry.update({
                "id": doc_id,
                "combined_score": normalized * keyword_weight,
                "vector_score": 0.0,
                "keyword_score": raw
            })
            merged[doc_id] = entry

    # sorted() is stable: ties keep vector rank, then keyword rank
    ranked = sorted(merged.values(), key=lambda r: r["combined_score"], reverse=True)
    return ranked[:k]


def _resolve_weight(value: Optional[float], default: float, name: str) -> float:
    weight = default if value is None else value
    if not 0 <= weight <= 1:
        raise ValidationFailed(f"{name} must be between 0 and 1")
    return float(weight)


# ============================================================
# HYBRID SEARCH SERVICE
# ============================================================

class HybridSearchService:
    """
    Vector + keyword search over the knowledge base.

    Usage:
        service = HybridSearchService()
        hits = service.hybrid_search(embedding, ["data analyst", "Jakarta"], k=10)
    """

    def __init__(self, kb_service: KBVectorService = None):
        self.kb_service = kb_service or KBVectorService()
        self.settings = get_settings()

    def hybrid_search(
        self,
        embedding: List[float],
        keywords: List[str],
        k: int = 15,
        vector_weight: Optional[float] = None,
        keyword_weight: Optional[float] = None,
        min_score: Optional[float] = None,
        num_candidates: Optional[int] = None
    ) -> List[dict]:
        """
        Args:
            embedding: query embedding
            keywords: terms for full-text search (empty = vector only)
            k: results to return
            vector_weight / keyword_weight: 0-1, None = configured default
            min_score: vector similarity threshold for vector candidates
        """
        if k < 1:
            raise ValidationFailed("k must be at least 1")

        vector_weight = _resolve_weight(vector_weight, self.settings.hybrid_vector_weight, "vector_weight")
        keyword_weight = _resolve_weight(keyword_weight, self.settings.hybrid_keyword_weight, "keyword_weight")

        vector_results = self.kb_service.knn_search(
            embedding,
            k * 2,
            min_score=min_score,
            num_candidates=num_candidates
        )

        try:
            keyword_results = self.kb_service.keyword_search(keywords or [], k * 2)
        except SearchError as e:
            logger.warning("Keyword search failed, using vector-only: %s", e)
            keyword_results = []

        results = fuse_results(vector_results, keyword_results, k, vector_weight, keyword_weight)
        logger.info(
            "Hybrid search: %d results (%d vector, %d keyword candidates)",
            len(results), len(vector_results), len(keyword_results)
        )
        return results


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_hybrid_search_service() -> HybridSearchService:
    """Get hybrid search service instance."""
    return HybridSearchService()
