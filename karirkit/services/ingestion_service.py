"""
Knowledge Base Ingestion Service

Turns source documents (salary surveys, reports, job-market articles) into
kb_vectors chunks:
1. Split text into overlapping chunks, remembering their line span
2. Embed chunks in batches
3. Store text + embedding + provenance in MongoDB
"""

import bisect
import logging
from datetime import datetime
from typing import List, Optional

from karirkit.core.config import get_settings
from karirkit.services.ai_client import AIClient, get_ai_client
from karirkit.services.mongo_service import KBVectorService

logger = logging.getLogger(__name__)


# ============================================================
# CHUNKING
# ============================================================

def chunk_text(text: str, chunk_size: int = 1000, overlap: int = 200) -> List[dict]:
    """
    Split text into overlapping character windows.

    A window that does not reach the end of the text is cut at its last
    whitespace in the second half, so words are not split. Chunk content
    is whitespace-normalized.

    Returns:
        [{"text": "...", "line_from": 1, "line_to": 12}, ...]
        Line numbers are 1-based positions in the original text.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError("overlap must be >= 0 and smaller than chunk_size")
    if not text or not text.strip():
        return []

    newlines = [i for i, ch in enumerate(text) if ch == "\n"]

    def line_of(offset: int) -> int:
        return bisect.bisect_right(newlines, offset - 1) + 1

    chunks = []
    length = len(text)
    start = 0
    while start < length:
        end = min(start + chunk_size, length)
        if end < length:
            cut = max(text.rfind(" ", start, end), text.rfind("\n", start, end))
            if cut > start + chunk_size // 2:
                end = cut

        window = text[start:end]
        content = " ".join(window.split())
        if content:
            first = start + (len(window) - len(window.lstrip()))
            last = start + len(window.rstrip()) - 1
            chunks.append({
                "text": content,
                "line_from": line_of(first),
                "line_to": line_of(last)
            })

        if end >= length:
            break
        start = end - overlap if end - overlap > start else end

    return chunks


# ============================================================
# INGESTION SERVICE
# ============================================================

class KBIngestionService:
    """
    Chunks, embeds and stores documents in the knowledge base.
    """

    def __init__(self, ai_client: AIClient = None, kb_service: KBVectorService = None):
        settings = get_settings()
        self.ai_client = ai_client or get_ai_client()
        self.kb_service = kb_service or KBVectorService()
        self.chunk_size = settings.chunk_size
        self.overlap = settings.chunk_overlap

    def ingest_text(
        self,
        text: str,
        source: str,
        metadata: Optional[dict] = None,
        replace: bool = False
    ) -> dict:
        """
        Ingest one document.

        Args:
            text: full document text
            source: document name, used for citations and replacement
            metadata: extra fields stored on every chunk
            replace: swap out the source's existing chunks once embedding succeeds

        Returns:
            {"source": ..., "chunks": 3, "ids": [...], "replaced": 0}
        """
        chunks = chunk_text(text, self.chunk_size, self.overlap)
        if not chunks:
            logger.warning("No text to ingest for source %s", source)
            return {"source": source, "chunks": 0, "ids": [], "replaced": 0}

        # Old chunks stay in place until the new ones are embedded
        embeddings = self.ai_client.embed_many([chunk["text"] for chunk in chunks])
        replaced = self.kb_service.delete_by_source(source) if replace else 0

        now = datetime.utcnow()
        docs = []
        for index, (chunk, embedding) in enumerate(zip(chunks, embeddings)):
            docs.append({
                "text": chunk["text"],
                "embedding": embedding,
                "source": source,
                "loc": {"lines": {"from": chunk["line_from"], "to": chunk["line_to"]}},
                "metadata": {**(metadata or {}), "chunkIndex": index},
                "created_at": now
            })

        ids = self.kb_service.insert_many(docs)
        logger.info("Ingested %d chunks from %s (replaced %d)", len(ids), source, replaced)
        return {"source": source, "chunks": len(ids), "ids": ids, "replaced": replaced}


def get_ingestion_service() -> KBIngestionService:
    """Get KB ingestion service instance."""
    return KBIngestionService()
