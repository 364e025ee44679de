"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Any, Dict
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class CacheType(str, Enum):
    salary_benchmark = "salary_benchmark"
    job_matching = "job_matching"
    cv_preferences = "cv_preferences"


class SalaryPosition(str, Enum):
    below = "below"
    fair = "fair"
    above = "above"


# ============================================================
# SALARY REQUEST SCHEMAS
# ============================================================

class SalaryRequestCreate(BaseModel):
    job_title: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    experience_year: float = Field(..., ge=0)
    current_or_offered_salary: float = Field(..., ge=0)

    @field_validator("job_title", "location")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class SalaryRequestResponse(BaseModel):
    id: str = Field(..., alias="_id")
    job_title: str
    location: str
    experience_year: float
    current_or_offered_salary: float
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"populate_by_name": True}


class SalaryRequestCreated(BaseModel):
    message: str
    request: SalaryRequestResponse


class SalaryHistoryResponse(BaseModel):
    message: str
    data: List[SalaryRequestResponse]


# ============================================================
# BENCHMARK SCHEMAS
# ============================================================

class SalaryBenchmark(BaseModel):
    market_minimum: int
    market_median: int
    market_maximum: int
    user_salary: int
    salary_position: SalaryPosition
    negotiation_tips: List[str] = []
    analysis: str = ""
    sources: List[str] = []


class SalaryBenchmarkResponse(BaseModel):
    message: str
    data: SalaryBenchmark
    cached: bool


# ============================================================
# KNOWLEDGE BASE SCHEMAS
# ============================================================

class KBSearchRequest(BaseModel):
    query: str = Field(..., min_length=1)
    keywords: List[str] = []
    top_k: int = Field(10, ge=1, le=100)
    vector_weight: Optional[float] = Field(None, ge=0, le=1)
    keyword_weight: Optional[float] = Field(None, ge=0, le=1)
    min_score: Optional[float] = Field(None, ge=0, le=1)


class KBSearchHit(BaseModel):
    id: str
    text: str = ""
    source: Optional[str] = None
    chunk: Optional[Any] = None
    combined_score: float
    vector_score: float
    keyword_score: float


class KBSearchResponse(BaseModel):
    results: List[KBSearchHit]
    total: int


class KBIngestTextRequest(BaseModel):
    text: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1)
    metadata: Dict[str, Any] = {}
    replace: bool = False


class KBIngestResponse(BaseModel):
    success: bool
    message: str
    source: str
    chunks: int
    replaced: int = 0


# ============================================================
# CACHE SCHEMAS
# ============================================================

class CacheTypeStats(BaseModel):
    cache_type: str
    total_entries: int
    total_hits: int
    avg_hits: float


class CacheStatsResponse(BaseModel):
    stats: List[CacheTypeStats]


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
