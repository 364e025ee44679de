"""
Salary Benchmark Service - retrieval-augmented generation.

Workflow for one stored salary request:
1. Return the cached benchmark if the same preferences were answered recently
2. Embed a query describing the request
3. Hybrid search the knowledge base (vector + keyword)
4. Build a prompt with the retrieved chunks as context
5. Generate, parse and sanitize the JSON benchmark
6. Cache the result (24h by default)
"""

import logging
from typing import List, Optional, Tuple

from karirkit.core.config import get_settings
from karirkit.core.errors import AIResponseError
from karirkit.services.ai_client import AIClient, get_ai_client
from karirkit.services.mongo_service import CacheService
from karirkit.services.retrieval_service import HybridSearchService

logger = logging.getLogger(__name__)

CACHE_TYPE = "salary_benchmark"

# A salary within this fraction of the median counts as fair
FAIR_BAND = 0.1


# ============================================================
# PROMPT HELPERS
# ============================================================

def _format_rupiah(value) -> str:
    """Whole rupiah with "." as thousands separator (id-ID style)."""
    return f"{int(round(float(value))):,}".replace(",", ".")


def _format_plain(value) -> str:
    """3.0 -> "3", 2.5 -> "2.5"."""
    number = float(value)
    return str(int(number)) if number.is_integer() else str(number)


def build_cache_preferences(request_doc: dict) -> dict:
    return {
        "job_title": request_doc["job_title"],
        "location": request_doc["location"],
        "experience_year": request_doc["experience_year"],
        "current_or_offered_salary": request_doc["current_or_offered_salary"]
    }


def build_query_text(request_doc: dict) -> str:
    """Text embedded for the knowledge-base search."""
    return (
        f"JobTitle: {request_doc['job_title']}; "
        f"Location: {request_doc['location']}; "
        f"Experience: {_format_plain(request_doc['experience_year'])} years; "
        f"CurrentOrOfferedSalary: {_format_plain(request_doc['current_or_offered_salary'])}"
    )


def build_keywords(request_doc: dict) -> List[str]:
    """Keyword terms, in English and Indonesian."""
    years = _format_plain(request_doc["experience_year"])
    return [
        request_doc["job_title"],
        request_doc["location"],
        "salary",
        "gaji",
        f"{years} tahun"
    ]


def format_kb_contexts(results: List[dict]) -> str:
    """Render retrieved chunks as numbered sources for the prompt."""
    blocks = []
    for index, result in enumerate(results, start=1):
        source = result.get("source") or result.get("sourceFile") or "Internal Knowledge Base"

        loc = result.get("loc") or {}
        metadata = result.get("metadata") or {}
        position = (loc.get("lines") or {}).get("from")
        if position is None:
            position = metadata.get("chunkIndex")
        if position is None:
            position = "?"

        score = result.get("score")
        score_text = f"{score:.2f}" if isinstance(score, (int, float)) else "N/A"
        content = result.get("text") or result.get("chunkText") or ""

        blocks.append(
            f"[KB SOURCE {index}] {source} (page/chunk {position})\n"
            f"Score: {score_text}\n"
            f"Content: {content}"
        )
    return "\n\n---\n\n".join(blocks)


def build_prompt(request_doc: dict, kb_contexts: str) -> str:
    salary = request_doc["current_or_offered_salary"]
    return f"""You are an expert salary benchmarking assistant for the Indonesian job market.

**User Request:**
- Job Title: {request_doc['job_title']}
- Location: {request_doc['location']}
- Years of Experience: {_format_plain(request_doc['experience_year'])}
- Current/Offered Salary: Rp {_format_rupiah(salary)}

**KNOWLEDGE BASE DATA (Hybrid Search):**
{kb_contexts or "No knowledge base data retrieved."}

**Instructions:**
1. Use the knowledge base data above as your primary evidence
2. Determine the market minimum, median, and maximum salary (in IDR per month) for this role/location/experience level
3. If sources disagree, explain the variance and give a weighted recommendation
4. Compare the user's current/offered salary against the market data
5. Provide 3-5 practical, actionable negotiation tips
6. Cite the knowledge base sources that were most relevant

**CRITICAL: You MUST respond with ONLY valid JSON, no markdown code blocks, no extra text.**

Response format (valid JSON only):
{{
  "market_minimum": 10000000,
  "market_median": 15000000,
  "market_maximum": 25000000,
  "user_salary": {_format_plain(salary)},
  "negotiation_tips": [
    "Specific actionable tip 1",
    "Specific actionable tip 2",
    "Specific actionable tip 3"
  ],
  "analysis": "Brief analysis of user's salary position relative to market",
  "sources": ["source reference 1", "source reference 2"]
}}

Return ONLY the JSON object, nothing else. Numbers should be integers (IDR per month), no formatting.
"""


# ============================================================
# RESULT VALIDATION
# ============================================================

def _to_amount(value) -> int:
    if isinstance(value, str):
        value = value.strip()
        try:
            value = float(value)
        except ValueError:
            # "Rp 10.000.000" style strings: keep the digits only
            value = "".join(ch for ch in value if ch.isdigit())
    try:
        return max(0, int(round(float(value))))
    except (TypeError, ValueError, OverflowError):
        return 0


def _to_str_list(value) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def classify_salary(user_salary: float, median: float) -> str:
    """below / fair / above, with a band of 10% of the median."""
    threshold = median * FAIR_BAND
    if user_salary < median - threshold:
        return "below"
    if user_salary > median + threshold:
        return "above"
    return "fair"


def validate_benchmark(data, user_salary: float) -> dict:
    """
    Validate and sanitize the generated benchmark.
    Market figures become non-negative integers in ascending order.
    """
    if not isinstance(data, dict):
        raise AIResponseError("AI returned invalid JSON format")

    minimum, median, maximum = sorted([
        _to_amount(data.get("market_minimum")),
        _to_amount(data.get("market_median")),
        _to_amount(data.get("market_maximum"))
    ])
    salary = _to_amount(user_salary)

    return {
        "market_minimum": minimum,
        "market_median": median,
        "market_maximum": maximum,
        "user_salary": salary,
        "salary_position": classify_salary(salary, median),
        "negotiation_tips": _to_str_list(data.get("negotiation_tips")),
        "analysis": str(data.get("analysis") or "").strip(),
        "sources": _to_str_list(data.get("sources"))
    }


# ============================================================
# BENCHMARK SERVICE
# ============================================================

class SalaryBenchmarkService:
    """
    Generates salary benchmarks for stored requests.
    """

    def __init__(
        self,
        ai_client: AIClient = None,
        search_service: HybridSearchService = None,
        cache_service: CacheService = None
    ):
        self.ai_client = ai_client or get_ai_client()
        self.search_service = search_service or HybridSearchService()
        self.cache_service = cache_service or CacheService()
        self.settings = get_settings()

    def retrieve_context(self, request_doc: dict) -> List[dict]:
        """Embed the request and hybrid search the knowledge base."""
        embedding = self.ai_client.embed(build_query_text(request_doc))
        return self.search_service.hybrid_search(
            embedding,
            build_keywords(request_doc),
            k=self.settings.hybrid_top_k,
            vector_weight=self.settings.hybrid_vector_weight,
            keyword_weight=self.settings.hybrid_keyword_weight,
            min_score=self.settings.hybrid_min_score
        )

    def benchmark(self, request_doc: dict, ttl_hours: Optional[float] = None) -> Tuple[dict, bool]:
        """
        Returns:
            (benchmark dict, True if served from cache)
        """
        preferences = build_cache_preferences(request_doc)

        cached = self.cache_service.get_cached(CACHE_TYPE, preferences)
        if cached is not None:
            return cached, True

        logger.info("Generating salary benchmark for '%s' in %s", request_doc["job_title"], request_doc["location"])

        kb_results = self.retrieve_context(request_doc)
        prompt = build_prompt(request_doc, format_kb_contexts(kb_results))

        response = self.ai_client.generate(prompt)
        parsed = self.ai_client.extract_json(response)
        result = validate_benchmark(parsed, request_doc["current_or_offered_salary"])

        self.cache_service.set_cache(CACHE_TYPE, preferences, result, ttl_hours)
        return result, False


def get_benchmark_service() -> SalaryBenchmarkService:
    """Get salary benchmark service instance."""
    return SalaryBenchmarkService()
