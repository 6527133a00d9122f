"""
Yojana RAG — Supabase Vector Store
pgvector table behind Supabase, used as the external vector backend.
Table and match function are defined in backend/sql/scheme_vectors.sql.
"""

import asyncio
import json
from typing import Any, Callable, Optional

from supabase import Client, create_client

from yojana.config import Settings
from yojana.core.errors import DimensionMismatchError
from yojana.core.vector_store import VectorBackend, VectorEntry
from yojana.models.scheme import SearchHit
from yojana.utils.logger import logger


def create_supabase_client(settings: Settings) -> Client:
    """
    Build a Supabase client.
    Uses the service role key for full DB access (backend only).
    """
    return create_client(
        supabase_url=settings.supabase_url,
        supabase_key=settings.supabase_key,
    )


def _parse_vector(raw: Any) -> Optional[list[float]]:
    """PostgREST returns pgvector columns as '[0.1,0.2,...]' strings."""
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = json.loads(raw)
    return [float(x) for x in raw]


class SupabaseVectorStore(VectorBackend):
    """
    Vector backend over the `scheme_vectors` table.
    Score is 1 - cosine distance as returned by the match function.
    """

    external = True

    def __init__(self, settings: Settings, dimension: int, client: Optional[Client] = None):
        self.settings = settings
        self.dimension = dimension
        self.table = settings.vector_table
        self.match_function = settings.vector_match_function
        self._client = client

    @property
    def name(self) -> str:
        return "supabase"

    async def _run(self, fn: Callable[[], Any]) -> Any:
        """The Supabase client is synchronous; keep it off the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn)

    async def connect(self) -> None:
        if self._client is None:
            if not self.settings.has_supabase_config:
                raise ConnectionError("Supabase is not configured (SUPABASE_URL / key missing)")
            self._client = create_supabase_client(self.settings)

        response = await self._run(
            lambda: self._client.table(self.table).select("id, embedding").limit(1).execute()
        )
        rows = response.data or []
        if rows:
            stored = _parse_vector(rows[0].get("embedding"))
            if stored is not None and len(stored) != self.dimension:
                raise DimensionMismatchError(self.dimension, len(stored), f"existing rows in '{self.table}'")

    async def upsert(self, entries: list[VectorEntry]) -> None:
        if not entries:
            return
        rows = [
            {
                "id": entry.id,
                "embedding": [float(x) for x in entry.vector],
                "name": entry.metadata.get("name", ""),
                "category": entry.metadata.get("category", ""),
                "tags": entry.metadata.get("tags", []),
                "document": entry.document,
                "metadata": entry.metadata,
            }
            for entry in entries
        ]
        await self._run(
            lambda: self._client.table(self.table).upsert(rows, on_conflict="id").execute()
        )

    async def query(self, vector: list[float], k: int) -> list[SearchHit]:
        if k <= 0:
            return []
        response = await self._run(
            lambda: self._client.rpc(
                self.match_function,
                {
                    "query_embedding": [float(x) for x in vector],
                    "match_count": k,
                },
            ).execute()
        )

        hits = []
        for row in response.data or []:
            if row.get("distance") is not None:
                score = 1.0 - float(row["distance"])
            else:
                score = float(row.get("similarity", 0.0))
            metadata = row.get("metadata") or {}
            hits.append(SearchHit(
                id=row["id"],
                name=row.get("name") or metadata.get("name", ""),
                category=row.get("category") or metadata.get("category", ""),
                score=score,
                metadata=metadata,
            ))
        return hits

    async def delete(self, ids: list[str]) -> None:
        await self._run(
            lambda: self._client.table(self.table).delete().in_("id", ids).execute()
        )
        logger.info(f"🗑️ Retired {len(ids)} scheme(s) from {self.table}")

    async def count(self) -> int:
        response = await self._run(
            lambda: self._client.table(self.table).select("id", count="exact").limit(1).execute()
        )
        if response.count is not None:
            return int(response.count)
        return len(response.data or [])
