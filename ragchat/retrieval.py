"""Retrieval pipeline: embed, over-fetch, optionally re-rank, assemble context.

This module implements:
- RetrievedPassage / RetrievalResult: ranked passages and their context string
- RetrievalPipeline.retrieve: vector search over-fetching ``over_fetch_k``
  candidates, then keeping the best ``final_k`` by re-ranker score (when
  re-ranking) or raw cosine similarity
- RetrievalPipeline.search: raw nearest neighbours for diagnostics

Re-ranker scores replace similarity scores outright; there is no blended score.
Each stage's failure aborts the call with its own error kind and nothing is
retried here.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ragchat.embedding import OpenAIEmbedder
from ragchat.errors import RerankerError
from ragchat.obs import span
from ragchat.reranker import CrossEncoderReranker
from ragchat.vector_store import PgVectorStore, ScoredPoint

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class RetrievedPassage:
    text: str
    score: float


@dataclass(frozen=True)
class RetrievalResult:
    """Passages ordered by descending relevance."""
    passages: List[RetrievedPassage] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.passages

    @property
    def context(self) -> str:
        """Passage texts in ranked order joined by blank lines."""
        return CONTEXT_SEPARATOR.join(p.text for p in self.passages)

    def __len__(self) -> int:
        return len(self.passages)


def _passage_text(point: ScoredPoint) -> Optional[str]:
    payload = point.payload or {}
    return payload.get("text") or payload.get("content") or None


class RetrievalPipeline:
    """Orchestrates embedder, vector store and optional re-ranker.

    Args:
        embedder: Query embedder.
        store: Vector store to search.
        reranker: Optional re-ranker; required when ``use_rerank`` is requested.
        collection: Default collection to search.
    """

    def __init__(
        self,
        embedder: OpenAIEmbedder,
        store: PgVectorStore,
        reranker: Optional[CrossEncoderReranker],
        collection: str,
    ):
        self.embedder = embedder
        self.store = store
        self.reranker = reranker
        self.collection = collection

    def search(self, query: str, top_k: int, collection: Optional[str] = None) -> List[ScoredPoint]:
        """Embed ``query`` and return the raw ``top_k`` nearest points."""
        qvec = self.embedder.embed_query(query)
        return self.store.search(collection or self.collection, qvec, top_k)

    def retrieve(
        self,
        query: str,
        over_fetch_k: int,
        final_k: int,
        use_rerank: bool,
        collection: Optional[str] = None,
    ) -> RetrievalResult:
        """Retrieve the ``final_k`` most relevant passages for ``query``.

        Args:
            query: Refined user query.
            over_fetch_k: Candidates fetched from the vector store (>= final_k).
            final_k: Passages kept.
            use_rerank: Order candidates by the re-ranker instead of raw similarity.
            collection: Collection to search; defaults to the pipeline's collection.

        Returns:
            RetrievalResult: Possibly empty when the collection has no candidates.

        Raises:
            ValueError: If ``final_k < 1`` or ``over_fetch_k < final_k``.
            EmbeddingError, VectorStoreError, RerankerError: When a stage fails.
        """
        if final_k < 1:
            raise ValueError("final_k must be >= 1")
        if over_fetch_k < final_k:
            raise ValueError("over_fetch_k must be >= final_k")
        if use_rerank and self.reranker is None:
            raise RerankerError("re-ranking requested but no re-ranker is configured")

        target = collection or self.collection
        with span("retrieve", {"collection": target, "over_fetch_k": over_fetch_k, "final_k": final_k}):
            candidates: List[RetrievedPassage] = []
            for p in self.search(query, over_fetch_k, target):
                text = _passage_text(p)
                if text:
                    candidates.append(RetrievedPassage(text=text, score=p.score))
            logger.info("Retrieved %d candidates from %s", len(candidates), target)
            if not candidates:
                return RetrievalResult()

            if use_rerank:
                ranked = self.reranker.rerank(query, [c.text for c in candidates], top_n=final_k)
                passages = [RetrievedPassage(text=candidates[i].text, score=s) for i, s in ranked]
            else:
                passages = sorted(candidates, key=lambda c: c.score, reverse=True)[:final_k]

        for rank, p in enumerate(passages, start=1):
            logger.debug("Rank %d: score=%.3f text=%r", rank, p.score, p.text[:80])
        return RetrievalResult(passages=passages)
