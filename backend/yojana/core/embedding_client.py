"""
Yojana RAG — Embedding Providers
Three interchangeable backends behind one interface:
  1. Remote model server (Ollama-style /api/embeddings)
  2. Local sentence-transformers model (all-MiniLM-L6-v2, 384 dims)
  3. Deterministic hash embedding (no model, always available)

embed() never raises for a well-formed string: remote and local backends
fall back to the hash embedding of the same text on any failure.
"""

import asyncio
import functools
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from yojana.config import Settings
from yojana.core.errors import ConfigurationError
from yojana.utils.logger import logger


def stable_hash(token: str) -> int:
    """32-bit signed string hash (h = h*31 + c). Stable across processes."""
    h = 0
    for ch in token:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def hash_embedding(text: str, dimension: int) -> list[float]:
    """Bag-of-tokens vector: each whitespace token adds 1 at abs(hash) % dimension."""
    vector = [0.0] * dimension
    for token in (text or "").lower().split():
        vector[abs(stable_hash(token)) % dimension] += 1.0
    return vector


class EmbeddingProvider(ABC):
    """Base class for all embedding backends. Dimension is fixed per instance."""

    def __init__(self, dimension: int):
        if dimension <= 0:
            raise ConfigurationError(f"Embedding dimension must be positive, got {dimension}")
        self._dimension = dimension

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for logging and metrics."""
        ...

    @property
    def dimension(self) -> int:
        return self._dimension

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Generate embedding for a single text string."""
        ...

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts concurrently, preserving order."""
        return list(await asyncio.gather(*(self.embed(t) for t in texts)))

    async def warm_up(self) -> None:
        """Load heavy resources ahead of the first call."""
        return None

    def fallback(self, text: str) -> list[float]:
        return hash_embedding(text, self._dimension)


class HashEmbeddingProvider(EmbeddingProvider):
    """Lowest quality, zero resources, fully reproducible."""

    @property
    def name(self) -> str:
        return "hash"

    async def embed(self, text: str) -> list[float]:
        return hash_embedding(text, self._dimension)


class RemoteEmbeddingProvider(EmbeddingProvider):
    """
    Embeddings from a model server over HTTP.
    One retry at most, then the hash fallback.
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        dimension: int,
        timeout: float = 10.0,
        max_retries: int = 1,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(dimension)
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.max_retries = min(max_retries, 1)
        self._transport = transport

    @property
    def name(self) -> str:
        return f"remote:{self.model}"

    async def embed(self, text: str) -> list[float]:
        for attempt in range(self.max_retries + 1):
            try:
                vector = await self._request(text)
            except Exception as e:
                logger.warning(
                    f"⚠️ Remote embedding attempt {attempt + 1}/{self.max_retries + 1} failed: {e}"
                )
                continue

            if len(vector) != self._dimension:
                logger.error(
                    f"❌ Remote model returned {len(vector)} dims, index expects {self._dimension}. "
                    f"Using hash embedding."
                )
                break
            return vector

        return self.fallback(text)

    async def _request(self, text: str) -> list[float]:
        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/api/embeddings",
                json={"model": self.model, "prompt": text},
            )
            response.raise_for_status()
            data = response.json()

        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        embedding = data.get("embedding")
        if not embedding:
            raise ValueError("response carried no embedding")
        return [float(x) for x in embedding]


class LocalEmbeddingProvider(EmbeddingProvider):
    """
    Local embedding generator using sentence-transformers.
    Model: all-MiniLM-L6-v2 (384 dimensions, ~80MB, very fast on CPU).
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2", dimension: int = 384, model=None):
        super().__init__(dimension)
        self.model_name = model_name
        self._model = model
        self._load_failed = False
        self._load_lock: Optional[asyncio.Lock] = None

    @property
    def name(self) -> str:
        return f"local:{self.model_name}"

    def _load_model(self):
        from sentence_transformers import SentenceTransformer

        logger.info(f"📦 Loading embedding model: {self.model_name}...")
        model = SentenceTransformer(self.model_name)
        model_dimension = model.get_sentence_embedding_dimension()
        if model_dimension != self._dimension:
            raise ConfigurationError(
                f"Model {self.model_name} produces {model_dimension} dims, "
                f"configured embedding_dimension is {self._dimension}"
            )
        logger.info(f"✅ Embedding model loaded. Dimension: {model_dimension}")
        return model

    async def warm_up(self) -> None:
        """Load the model now; a dimension mismatch is fatal here."""
        try:
            await self._get_model()
        except ConfigurationError:
            raise
        except Exception as e:
            logger.warning(f"⚠️ Embedding model unavailable, using hash embeddings: {e}")

    async def _get_model(self):
        if self._model is not None or self._load_failed:
            return self._model
        if self._load_lock is None:
            self._load_lock = asyncio.Lock()
        async with self._load_lock:
            if self._model is None and not self._load_failed:
                loop = asyncio.get_running_loop()
                try:
                    self._model = await loop.run_in_executor(None, self._load_model)
                except Exception:
                    self._load_failed = True
                    raise
        return self._model

    async def embed(self, text: str) -> list[float]:
        try:
            model = await self._get_model()
            if model is None:
                return self.fallback(text)
            loop = asyncio.get_running_loop()
            embedding = await loop.run_in_executor(
                None,
                functools.partial(model.encode, text, normalize_embeddings=True),
            )
            return [float(x) for x in embedding]
        except Exception as e:
            logger.warning(f"⚠️ Local embedding failed, using hash embedding: {e}")
            return self.fallback(text)

    async def embed_batch(self, texts: list[str], batch_size: int = 32) -> list[list[float]]:
        """Generate embeddings for multiple texts in one encode call."""
        if not texts:
            return []
        try:
            model = await self._get_model()
            if model is None:
                return [self.fallback(t) for t in texts]
            loop = asyncio.get_running_loop()
            embeddings = await loop.run_in_executor(
                None,
                functools.partial(
                    model.encode,
                    texts,
                    batch_size=batch_size,
                    normalize_embeddings=True,
                    show_progress_bar=False,
                ),
            )
            return [[float(x) for x in row] for row in embeddings]
        except Exception as e:
            logger.warning(f"⚠️ Local batch embedding failed, using hash embeddings: {e}")
            return [self.fallback(t) for t in texts]


def create_embedding_provider(settings: Settings) -> EmbeddingProvider:
    """Pick the one provider this process uses."""
    choice = settings.embedding_provider.strip().lower()
    if choice == "remote":
        return RemoteEmbeddingProvider(
            base_url=settings.remote_embedding_url,
            model=settings.remote_embedding_model,
            dimension=settings.embedding_dimension,
            timeout=settings.embedding_timeout_seconds,
        )
    if choice == "local":
        return LocalEmbeddingProvider(
            model_name=settings.embedding_model,
            dimension=settings.embedding_dimension,
        )
    if choice == "hash":
        return HashEmbeddingProvider(settings.embedding_dimension)
    raise ConfigurationError(f"Unknown embedding_provider '{settings.embedding_provider}'")
