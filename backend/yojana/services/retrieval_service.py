"""
Yojana RAG — Retrieval Service
query text -> embedding -> vector index -> ranked scheme hits.
Each step has independent error handling: search() never raises,
"no results" is returned as an empty list.
"""

from yojana.core.embedding_client import EmbeddingProvider
from yojana.core.vector_store import VectorIndex
from yojana.models.scheme import SearchHit
from yojana.utils.logger import logger


class RetrievalService:
    """Read-only view over the vector index."""

    def __init__(self, provider: EmbeddingProvider, index: VectorIndex):
        self._provider = provider
        self._index = index

    async def search(self, query_text: str, k: int = 5) -> list[SearchHit]:
        """Top-k schemes for a natural-language query, best first."""
        if not query_text or not query_text.strip() or k <= 0:
            return []

        # ── Step 1: Embedding ──
        try:
            query_embedding = await self._provider.embed(query_text)
        except Exception as e:
            logger.warning(f"⚠️ Query embedding failed (returning no results): {e}")
            return []

        # ── Step 2: Vector search ──
        try:
            hits = await self._index.query(query_embedding, k)
        except Exception as e:
            logger.warning(f"⚠️ Vector search failed (returning no results): {e}")
            return []

        logger.info(f"🔍 '{query_text[:60]}' → {len(hits)} result(s)")
        return hits
