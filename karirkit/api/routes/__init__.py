"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from karirkit.api.routes.salary_routes import router as salary_router
from karirkit.api.routes.kb_routes import router as kb_router
from karirkit.api.routes.cache_routes import router as cache_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(salary_router)
api_router.include_router(kb_router)
api_router.include_router(cache_router)
