"""
Knowledge Base Routes

POST /kb/search      - Hybrid search the knowledge base for a query
POST /kb/ingest      - Upload a document (PDF/DOCX/TXT/MD) into the KB
POST /kb/ingest-text - Ingest raw text into the KB
GET  /kb/formats     - Supported upload formats
"""

from typing import Optional

from fastapi import APIRouter, Depends, UploadFile, File, Form
from fastapi.concurrency import run_in_threadpool

from karirkit.core.auth import get_current_user_id
from karirkit.services.ai_client import get_ai_client
from karirkit.services.retrieval_service import get_hybrid_search_service
from karirkit.services.ingestion_service import get_ingestion_service
from karirkit.utils.file_upload import extract_text_from_file, get_supported_formats
from karirkit.schemas.schemas import (
    KBSearchRequest, KBSearchResponse, KBSearchHit, KBIngestTextRequest, KBIngestResponse
)

router = APIRouter(prefix="/kb", tags=["Knowledge Base"])


def _to_hit(result: dict) -> KBSearchHit:
    loc = result.get("loc") or {}
    metadata = result.get("metadata") or {}
    chunk = (loc.get("lines") or {}).get("from", metadata.get("chunkIndex"))
    return KBSearchHit(
        id=result["id"],
        text=result.get("text") or result.get("chunkText") or "",
        source=result.get("source") or result.get("sourceFile"),
        chunk=chunk,
        combined_score=round(result["combined_score"], 4),
        vector_score=round(result["vector_score"], 4),
        keyword_score=round(result["keyword_score"], 4)
    )


@router.post("/search", response_model=KBSearchResponse)
def search(request: KBSearchRequest, user_id: str = Depends(get_current_user_id)):
    """
    Hybrid search.

    The query is embedded for vector search; keywords default to the
    query's words when not given.
    """
    embedding = get_ai_client().embed(request.query)
    keywords = request.keywords or request.query.split()

    results = get_hybrid_search_service().hybrid_search(
        embedding,
        keywords,
        k=request.top_k,
        vector_weight=request.vector_weight,
        keyword_weight=request.keyword_weight,
        min_score=request.min_score
    )
    hits = [_to_hit(r) for r in results]
    return KBSearchResponse(results=hits, total=len(hits))


@router.post("/ingest", response_model=KBIngestResponse, status_code=201)
async def ingest_file(
    file: UploadFile = File(..., description="Document (PDF, DOCX, TXT or MD)"),
    source: Optional[str] = Form(None, description="Source name, defaults to the filename"),
    replace: bool = Form(False),
    user_id: str = Depends(get_current_user_id)
):
    """Extract text from a document and store it as KB chunks."""
    text, filename = await extract_text_from_file(file)
    source = source or filename

    result = await run_in_threadpool(
        get_ingestion_service().ingest_text,
        text,
        source,
        {"filename": filename, "uploaded_by": user_id},
        replace
    )
    return KBIngestResponse(
        success=True,
        message=f"Ingested {result['chunks']} chunks from {source}",
        source=source,
        chunks=result["chunks"],
        replaced=result["replaced"]
    )


@router.post("/ingest-text", response_model=KBIngestResponse, status_code=201)
def ingest_text(request: KBIngestTextRequest, user_id: str = Depends(get_current_user_id)):
    """Store raw text as KB chunks."""
    metadata = {**request.metadata, "uploaded_by": user_id}
    result = get_ingestion_service().ingest_text(
        request.text, request.source, metadata, request.replace
    )
    return KBIngestResponse(
        success=True,
        message=f"Ingested {result['chunks']} chunks from {request.source}",
        source=request.source,
        chunks=result["chunks"],
        replaced=result["replaced"]
    )


@router.get("/formats")
async def formats():
    """Get supported document formats."""
    return get_supported_formats()
