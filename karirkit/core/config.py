"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "KarirKitDB"

    # AI provider (OpenAI-compatible endpoint, Gemini by default)
    ai_api_key: str = ""
    ai_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    generation_model: str = "gemini-2.5-flash"
    embedding_model: str = "gemini-embedding-001"
    embedding_batch_size: int = 32

    # Search
    # "atlas" uses $vectorSearch / $search, "local" uses numpy + classic $text
    search_backend: Literal["atlas", "local"] = "atlas"
    atlas_vector_index_name: str = "vector_index"
    atlas_search_index_name: str = "default"

    # Hybrid search defaults
    hybrid_top_k: int = 10
    hybrid_vector_weight: float = 0.7
    hybrid_keyword_weight: float = 0.3
    hybrid_min_score: float = 0.6

    # Result cache TTLs (hours)
    cache_ttl_salary_benchmark: int = 24
    cache_ttl_job_matching: int = 12
    cache_ttl_cv_preferences: int = 24

    # KB ingestion
    chunk_size: int = 1000
    chunk_overlap: int = 200
    max_upload_size_mb: int = 10

    # App
    log_level: str = "INFO"
    debug: bool = True

    @property
    def cache_ttls(self) -> dict:
        """TTL in hours per cache type."""
        return {
            "salary_benchmark": self.cache_ttl_salary_benchmark,
            "job_matching": self.cache_ttl_job_matching,
            "cv_preferences": self.cache_ttl_cv_preferences,
        }

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
