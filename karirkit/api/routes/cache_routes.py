"""
Cache Routes

GET    /cache/stats        - Entries and hits per cache type
DELETE /cache/expired      - Remove expired entries
DELETE /cache/user         - Remove entries whose preferences carry the caller's user_id
DELETE /cache/{cache_type} - Invalidate one cache type
"""

from fastapi import APIRouter, Depends

from karirkit.core.auth import get_current_user_id
from karirkit.services.mongo_service import CacheService
from karirkit.schemas.schemas import CacheStatsResponse, CacheType, MessageResponse

router = APIRouter(prefix="/cache", tags=["Cache"])


@router.get("/stats", response_model=CacheStatsResponse)
def cache_stats(user_id: str = Depends(get_current_user_id)):
    return CacheStatsResponse(stats=CacheService().get_stats())


@router.delete("/expired", response_model=MessageResponse)
def clear_expired(user_id: str = Depends(get_current_user_id)):
    deleted = CacheService().clear_expired()
    return MessageResponse(message=f"Cleared {deleted} expired cache entries")


@router.delete("/user", response_model=MessageResponse)
def clear_user_cache(user_id: str = Depends(get_current_user_id)):
    """
    Remove entries keyed by preferences.user_id == caller.

    Salary benchmarks are shared across users (their preferences hold no
    user_id), so they are not affected; use DELETE /cache/salary_benchmark.
    """
    deleted = CacheService().clear_user_cache(user_id)
    return MessageResponse(message=f"Cleared {deleted} cache entries for user {user_id}")


@router.delete("/{cache_type}", response_model=MessageResponse)
def invalidate_type(cache_type: CacheType, user_id: str = Depends(get_current_user_id)):
    deleted = CacheService().invalidate_by_type(cache_type.value)
    return MessageResponse(message=f"Invalidated {deleted} cache entries for {cache_type.value}")
