import json
from unittest.mock import MagicMock

import httpx
import numpy as np
import pytest

from yojana.core.embedding_client import (
    HashEmbeddingProvider,
    LocalEmbeddingProvider,
    RemoteEmbeddingProvider,
    create_embedding_provider,
    hash_embedding,
    stable_hash,
)
from yojana.core.errors import ConfigurationError


def test_stable_hash_matches_known_values():
    assert stable_hash("") == 0
    assert stable_hash("a") == 97
    assert stable_hash("ab") == 97 * 31 + 98


def test_stable_hash_wraps_to_signed_32_bit():
    value = stable_hash("pradhan mantri kisan samman nidhi yojana")
    assert -(2 ** 31) <= value < 2 ** 31


def test_hash_embedding_is_deterministic_and_counts_tokens():
    first = hash_embedding("Farmer income support farmer", 384)
    second = hash_embedding("farmer INCOME support FARMER", 384)

    assert first == second
    assert len(first) == 384
    assert sum(first) == 4.0
    assert first[abs(stable_hash("farmer")) % 384] >= 2.0


def test_hash_embedding_of_empty_text_is_zero_vector():
    assert hash_embedding("", 16) == [0.0] * 16
    assert hash_embedding("   ", 16) == [0.0] * 16


def test_provider_rejects_non_positive_dimension():
    with pytest.raises(ConfigurationError):
        HashEmbeddingProvider(0)


@pytest.mark.asyncio
async def test_hash_provider_batch_preserves_order():
    provider = HashEmbeddingProvider(64)
    texts = ["pm kisan", "merit scholarship", "awas yojana"]

    vectors = await provider.embed_batch(texts)

    assert vectors == [hash_embedding(t, 64) for t in texts]


@pytest.mark.asyncio
async def test_remote_provider_returns_server_vector():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"embedding": [0.5, 0.25, 0.0, 1.0]})

    provider = RemoteEmbeddingProvider(
        "http://embeddings.local/", "nomic-embed-text", 4, transport=httpx.MockTransport(handler)
    )

    vector = await provider.embed("farmer income support")

    assert vector == [0.5, 0.25, 0.0, 1.0]
    assert seen == [{"model": "nomic-embed-text", "prompt": "farmer income support"}]
    assert provider.name == "remote:nomic-embed-text"


@pytest.mark.asyncio
async def test_remote_provider_retries_once_then_falls_back_to_hash():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(503, json={"error": "model loading"})

    provider = RemoteEmbeddingProvider(
        "http://embeddings.local", "nomic-embed-text", 8, transport=httpx.MockTransport(handler)
    )

    vector = await provider.embed("farmer income support")

    assert len(calls) == 2
    assert vector == hash_embedding("farmer income support", 8)


@pytest.mark.asyncio
async def test_remote_provider_wrong_dimension_falls_back_without_retry():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(200, json={"embedding": [0.1, 0.2]})

    provider = RemoteEmbeddingProvider(
        "http://embeddings.local", "nomic-embed-text", 8, transport=httpx.MockTransport(handler)
    )

    vector = await provider.embed("pm kisan")

    assert len(calls) == 1
    assert vector == hash_embedding("pm kisan", 8)


@pytest.mark.asyncio
async def test_remote_provider_non_object_body_falls_back_to_hash():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[0.1, 0.2])

    provider = RemoteEmbeddingProvider(
        "http://embeddings.local", "nomic-embed-text", 8, transport=httpx.MockTransport(handler)
    )

    vectors = await provider.embed_batch(["hello world", "pm kisan"])

    assert vectors == [hash_embedding("hello world", 8), hash_embedding("pm kisan", 8)]


@pytest.mark.asyncio
async def test_local_provider_uses_injected_model():
    model = MagicMock()
    model.encode.return_value = np.array([0.6, 0.8, 0.0])
    provider = LocalEmbeddingProvider("all-MiniLM-L6-v2", 3, model=model)

    vector = await provider.embed("scholarship")

    assert vector == pytest.approx([0.6, 0.8, 0.0])
    model.encode.assert_called_once()


@pytest.mark.asyncio
async def test_local_provider_falls_back_when_encode_fails():
    model = MagicMock()
    model.encode.side_effect = RuntimeError("CUDA out of memory")
    provider = LocalEmbeddingProvider("all-MiniLM-L6-v2", 16, model=model)

    assert await provider.embed("pm kisan") == hash_embedding("pm kisan", 16)
    assert await provider.embed_batch(["a b", "c"]) == [hash_embedding("a b", 16), hash_embedding("c", 16)]


@pytest.mark.asyncio
async def test_local_provider_warm_up_raises_on_dimension_mismatch(monkeypatch):
    provider = LocalEmbeddingProvider("all-MiniLM-L6-v2", 768)

    def load_wrong_model():
        raise ConfigurationError("Model all-MiniLM-L6-v2 produces 384 dims, configured embedding_dimension is 768")

    monkeypatch.setattr(provider, "_load_model", load_wrong_model)

    with pytest.raises(ConfigurationError):
        await provider.warm_up()


def test_create_embedding_provider_from_settings(settings):
    assert create_embedding_provider(settings).name == "hash"

    remote = create_embedding_provider(settings.model_copy(update={"embedding_provider": "remote"}))
    assert isinstance(remote, RemoteEmbeddingProvider)
    assert remote.dimension == 384

    with pytest.raises(ConfigurationError):
        create_embedding_provider(settings.model_copy(update={"embedding_provider": "word2vec"}))
