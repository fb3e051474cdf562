"""
Shared test fixtures and fakes for the whole suite.

Provides: deterministic in-memory embedder, vector store and re-ranker fakes,
a mocked OpenAI client factory, and a TestClient with dependency overrides.
No test touches the network, PostgreSQL or a model download.
"""

import math
import os
import re
import zlib
from types import SimpleNamespace
from typing import Dict, List, Sequence
from unittest.mock import MagicMock

os.environ.setdefault("INIT_DB_ON_STARTUP", "false")
os.environ.setdefault("OTEL_CONSOLE_EXPORT", "false")

import pytest
from fastapi.testclient import TestClient

from ragchat.config import settings
from ragchat.errors import EmbeddingDimensionError
from ragchat.vector_store import ScoredPoint, StoredPoint

DIM = settings.EMBEDDING_DIM


def _tokens(text: str) -> List[str]:
    return re.findall(r"[a-z0-9]+", text.lower())


class FakeEmbedder:
    """Hashes words into a normalized bag-of-words vector of the configured dimension."""

    def __init__(self, dimensions: int = DIM):
        self.dimensions = dimensions
        self.calls: List[List[str]] = []

    def _embed(self, text: str) -> List[float]:
        vec = [0.0] * self.dimensions
        for tok in _tokens(text) or [text]:
            vec[zlib.crc32(tok.encode("utf-8")) % self.dimensions] += 1.0
        norm = math.sqrt(sum(x * x for x in vec)) or 1.0
        return [x / norm for x in vec]

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        return [self._embed(t) for t in texts]

    def embed_query(self, text: str) -> List[float]:
        return self.embed_texts([text])[0]


class FakeVectorStore:
    """In-memory collections with cosine similarity search."""

    def __init__(self, dim: int = DIM):
        self.dim = dim
        self.collections: Dict[str, List[StoredPoint]] = {}
        self.upsert_calls: List[str] = []

    def upsert(self, collection: str, points: Sequence[StoredPoint]) -> int:
        for p in points:
            if len(p.vector) != self.dim:
                raise EmbeddingDimensionError(self.dim, len(p.vector))
        self.upsert_calls.append(collection)
        self.collections.setdefault(collection, []).extend(points)
        return len(points)

    def search(self, collection: str, vector: Sequence[float], limit: int) -> List[ScoredPoint]:
        scored = []
        for p in self.collections.get(collection, []):
            dot = sum(a * b for a, b in zip(vector, p.vector))
            na = math.sqrt(sum(a * a for a in vector)) or 1.0
            nb = math.sqrt(sum(b * b for b in p.vector)) or 1.0
            scored.append(ScoredPoint(id=str(p.id), score=dot / (na * nb), payload=dict(p.payload)))
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored[:limit]

    def count(self, collection: str) -> int:
        return len(self.collections.get(collection, []))

    def payloads(self, collection: str) -> List[dict]:
        return [p.payload for p in self.collections.get(collection, [])]


class FakeReranker:
    """Scores passages by a caller-supplied mapping, defaulting to passage length."""

    def __init__(self, scores: Dict[str, float] = None, should_fail: bool = False):
        self.scores = scores or {}
        self.should_fail = should_fail
        self.calls: List[tuple] = []

    def rerank(self, query: str, passages: List[str], top_n: int = None):
        from ragchat.errors import RerankerError

        self.calls.append((query, list(passages)))
        if self.should_fail:
            raise RerankerError("fake reranker failure")
        ranked = sorted(
            ((i, float(self.scores.get(p, len(p)))) for i, p in enumerate(passages)),
            key=lambda x: x[1],
            reverse=True,
        )
        return ranked[:top_n] if top_n is not None else ranked


def make_stream_chunks(parts: List[str]):
    """Build objects shaped like OpenAI ChatCompletionChunk items."""
    return [
        SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=p))])
        for p in parts
    ]


class FakeOpenAIStream:
    """Iterable with close(), like openai.Stream."""

    def __init__(self, parts: List[str], fail_after: int = None):
        self._chunks = make_stream_chunks(parts)
        self.fail_after = fail_after
        self.closed = False

    def __iter__(self):
        for n, chunk in enumerate(self._chunks):
            if self.fail_after is not None and n >= self.fail_after:
                raise RuntimeError("connection reset mid-stream")
            yield chunk

    def close(self):
        self.closed = True


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_store() -> FakeVectorStore:
    return FakeVectorStore()


@pytest.fixture
def openai_client() -> MagicMock:
    """Mock OpenAI client whose chat stream yields a short answer."""
    client = MagicMock()
    client.chat.completions.create.side_effect = lambda **kwargs: FakeOpenAIStream(["Hello", ", ", "world"])
    return client


@pytest.fixture
def app():
    from ragchat.main import app as fastapi_app

    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    """Provide TestClient for the FastAPI app (startup hooks not run)."""
    return TestClient(app)
