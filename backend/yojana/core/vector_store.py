"""
Yojana RAG — Vector Index
Stores (id, vector, metadata) entries and answers top-k cosine queries.

Two interchangeable backends:
  1. SupabaseVectorStore — pgvector table behind Supabase (see supabase_client.py)
  2. InMemoryVectorStore — dict keyed by scheme id, linear cosine scan

The backend is chosen once at startup. If the external backend cannot be
reached, the index switches to the in-memory store for the lifetime of the
process and re-embeds every known scheme into it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

import numpy as np

from yojana.config import Settings
from yojana.core.errors import ConfigurationError, DimensionMismatchError
from yojana.models.scheme import SchemeRecord, SearchHit
from yojana.utils.logger import logger


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b|), defined as 0.0 when either norm is zero."""
    vec_a = np.asarray(a, dtype=float)
    vec_b = np.asarray(b, dtype=float)
    if vec_a.shape != vec_b.shape:
        raise DimensionMismatchError(vec_a.size, vec_b.size, "cosine similarity")

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.clip(np.dot(vec_a, vec_b) / (norm_a * norm_b), -1.0, 1.0))


@dataclass
class VectorEntry:
    """One indexed scheme: its vector plus display metadata."""
    id: str
    vector: list[float]
    metadata: dict = field(default_factory=dict)
    document: str = ""


@dataclass
class ChunkError:
    chunk_index: int
    ids: list[str]
    error: str


@dataclass
class BatchUpsertReport:
    total: int = 0
    upserted: int = 0
    chunk_sizes: list[int] = field(default_factory=list)
    errors: list[ChunkError] = field(default_factory=list)

    @property
    def failed_ids(self) -> list[str]:
        return [sid for err in self.errors for sid in err.ids]

    @property
    def ok(self) -> bool:
        return not self.errors


def entry_from_record(record: SchemeRecord, vector: list[float]) -> VectorEntry:
    return VectorEntry(
        id=record.id,
        vector=vector,
        metadata=record.index_metadata(),
        document=record.document_text(),
    )


async def embed_records(provider, records: list[SchemeRecord], chunk_size: int = 500) -> list[VectorEntry]:
    """Embed records chunk by chunk; texts within a chunk are embedded concurrently."""
    entries = []
    for start in range(0, len(records), chunk_size):
        chunk = records[start:start + chunk_size]
        vectors = await provider.embed_batch([r.document_text() for r in chunk])
        entries.extend(entry_from_record(r, v) for r, v in zip(chunk, vectors))
    return entries


class VectorBackend(ABC):
    """Storage strategy behind the VectorIndex."""

    external = False

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    async def connect(self) -> None:
        """Verify the backend is usable. Raise on failure."""
        return None

    @abstractmethod
    async def upsert(self, entries: list[VectorEntry]) -> None:
        ...

    @abstractmethod
    async def query(self, vector: list[float], k: int) -> list[SearchHit]:
        ...

    @abstractmethod
    async def delete(self, ids: list[str]) -> None:
        ...

    @abstractmethod
    async def count(self) -> int:
        ...


class InMemoryVectorStore(VectorBackend):
    """
    In-process store. Entries are keyed by id, so upserting an existing id
    overwrites it instead of adding a second copy.
    Score is raw cosine similarity in [-1, 1].
    """

    def __init__(self, dimension: int):
        self.dimension = dimension
        self._vectors: dict[str, np.ndarray] = {}
        self._metadata: dict[str, dict] = {}
        self._documents: dict[str, str] = {}

    @property
    def name(self) -> str:
        return "memory"

    async def upsert(self, entries: list[VectorEntry]) -> None:
        for entry in entries:
            vector = np.asarray(entry.vector, dtype=float)
            if vector.size != self.dimension:
                raise DimensionMismatchError(self.dimension, vector.size, f"scheme {entry.id}")
            self._vectors[entry.id] = vector
            self._metadata[entry.id] = dict(entry.metadata)
            self._documents[entry.id] = entry.document

    async def query(self, vector: list[float], k: int) -> list[SearchHit]:
        if k <= 0 or not self._vectors:
            return []

        query_vec = np.asarray(vector, dtype=float)
        if query_vec.size != self.dimension:
            raise DimensionMismatchError(self.dimension, query_vec.size, "query vector")

        ids = list(self._vectors)
        matrix = np.vstack([self._vectors[i] for i in ids])
        denominators = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query_vec)
        dots = matrix @ query_vec
        scores = np.divide(dots, denominators, out=np.zeros_like(dots), where=denominators != 0)
        scores = np.clip(scores, -1.0, 1.0)

        # Stable sort keeps insertion order among equal scores
        order = np.argsort(-scores, kind="stable")[:k]
        hits = []
        for idx in order:
            scheme_id = ids[idx]
            metadata = self._metadata.get(scheme_id, {})
            hits.append(SearchHit(
                id=scheme_id,
                name=metadata.get("name", ""),
                category=metadata.get("category", ""),
                score=float(scores[idx]),
                metadata=metadata,
            ))
        return hits

    async def delete(self, ids: list[str]) -> None:
        for scheme_id in ids:
            self._vectors.pop(scheme_id, None)
            self._metadata.pop(scheme_id, None)
            self._documents.pop(scheme_id, None)

    async def count(self) -> int:
        return len(self._vectors)


class VectorIndex:
    """
    The one index instance of the process. Training writes to it,
    retrieval only reads.
    """

    def __init__(self, backend: VectorBackend, dimension: int, batch_size: int = 500):
        self._backend = backend
        self.dimension = dimension
        self.batch_size = max(1, batch_size)
        self._is_fallback = False
        self._initialized = False

    @property
    def backend_name(self) -> str:
        return self._backend.name

    @property
    def is_fallback(self) -> bool:
        return self._is_fallback

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self, provider, known_records: Iterable[SchemeRecord] = ()) -> None:
        """
        Connect to the configured backend once. Any failure other than a
        configuration error switches to the in-memory store for good.
        """
        if provider.dimension != self.dimension:
            raise DimensionMismatchError(self.dimension, provider.dimension, f"provider {provider.name}")

        records = list(known_records)

        if self._backend.external:
            try:
                await self._backend.connect()
                existing = await self._backend.count()
                logger.info(f"📊 Connected to {self._backend.name} vector index ({existing} entries)")
            except ConfigurationError:
                raise
            except Exception as e:
                logger.error(f"❌ Vector backend '{self._backend.name}' unavailable: {e}")
                logger.info("🔄 Falling back to in-memory vector storage...")
                self._backend = InMemoryVectorStore(self.dimension)
                self._is_fallback = True
                existing = 0
        else:
            existing = await self._backend.count()

        if existing == 0 and records:
            logger.info(f"📝 Seeding {self._backend.name} index with {len(records)} known schemes...")
            entries = await embed_records(provider, records, self.batch_size)
            report = await self.upsert_batch(entries)
            logger.info(f"✅ Seeded {report.upserted}/{report.total} schemes")

        self._initialized = True

    def _check_dimension(self, vector: Sequence[float], context: str) -> None:
        if len(vector) != self.dimension:
            raise DimensionMismatchError(self.dimension, len(vector), context)

    async def upsert(self, scheme_id: str, vector: list[float], metadata: dict, document: str = "") -> None:
        """Insert or overwrite one entry."""
        self._check_dimension(vector, f"scheme {scheme_id}")
        await self._backend.upsert([VectorEntry(scheme_id, vector, metadata, document)])

    async def upsert_batch(self, entries: list[VectorEntry], chunk_size: Optional[int] = None) -> BatchUpsertReport:
        """
        Write entries in sequential chunks. A failed chunk is recorded and
        the remaining chunks are still sent.
        """
        size = max(1, chunk_size or self.batch_size)
        report = BatchUpsertReport(total=len(entries))

        for chunk_index, start in enumerate(range(0, len(entries), size)):
            chunk = entries[start:start + size]
            for entry in chunk:
                self._check_dimension(entry.vector, f"scheme {entry.id}")
            try:
                await self._backend.upsert(chunk)
            except ConfigurationError:
                raise
            except Exception as e:
                logger.error(f"❌ Batch {chunk_index + 1} ({len(chunk)} schemes) failed: {e}")
                report.errors.append(ChunkError(chunk_index, [entry.id for entry in chunk], str(e)))
                continue

            report.chunk_sizes.append(len(chunk))
            report.upserted += len(chunk)
            logger.info(f"✅ Added batch {chunk_index + 1} ({len(chunk)} schemes)")

        return report

    async def query(self, vector: list[float], k: int) -> list[SearchHit]:
        self._check_dimension(vector, "query vector")
        return await self._backend.query(vector, k)

    async def retire(self, ids: list[str]) -> None:
        """Explicitly remove entries. Training never deletes on its own."""
        if ids:
            await self._backend.delete(list(ids))

    async def count(self) -> int:
        return await self._backend.count()


def create_vector_index(settings: Settings) -> VectorIndex:
    """Build the index with the backend named in settings."""
    choice = settings.vector_backend.strip().lower()
    if choice == "supabase":
        from yojana.core.supabase_client import SupabaseVectorStore
        backend = SupabaseVectorStore(settings, settings.embedding_dimension)
    elif choice == "memory":
        backend = InMemoryVectorStore(settings.embedding_dimension)
    else:
        raise ConfigurationError(f"Unknown vector_backend '{settings.vector_backend}'")
    return VectorIndex(backend, settings.embedding_dimension, settings.batch_size)
