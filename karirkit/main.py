"""
KarirKit Salary Benchmark - Main Application

FastAPI backend with:
- MongoDB for salary requests, KB vectors and cached results
- Hybrid (vector + keyword) retrieval over the knowledge base
- Gemini (OpenAI-compatible API) for embeddings and generation

Run: uvicorn karirkit.main:app --reload
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from karirkit.api.routes import api_router
from karirkit.core.config import get_settings
from karirkit.core.errors import register_exception_handlers
from karirkit.core.logging_config import configure_logging
from karirkit.db.mongodb import init_mongo_indexes, test_mongo_connection
from karirkit.services.ai_client import get_ai_client

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="KarirKit Salary Benchmark",
    description="""
    Salary benchmarking for job seekers, grounded in a knowledge base.

    ## Features
    - **Salary Benchmark**: Save salary requests and benchmark them (RAG)
    - **Knowledge Base**: Ingest documents and run hybrid search
    - **Cache**: Inspect and invalidate cached results
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    debug=settings.debug
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include API routes
app.include_router(api_router, prefix="/api")


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize MongoDB indexes on startup."""
    try:
        init_mongo_indexes()
        logger.info("MongoDB indexes initialized")
    except Exception as e:
        logger.warning("MongoDB index initialization failed: %s", e)


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "KarirKit Salary Benchmark"}


@app.get("/health", tags=["Health"])
def health_check():
    """Detailed health check."""
    mongo_ok = test_mongo_connection()
    ai_ok = get_ai_client().test_connection()

    return {
        "status": "healthy" if mongo_ok and ai_ok else "degraded",
        "mongodb": "connected" if mongo_ok else "disconnected",
        "ai": "connected" if ai_ok else "disconnected"
    }
