"""Cross-encoder re-ranking.

Provides:
- CrossEncoderReranker: lazily loads a sentence-transformers CrossEncoder and
  orders (query, passage) pairs by relevance.

Any load or predict failure raises RerankerError; the retrieval pipeline does
not fall back to raw similarity.
"""
import logging
from typing import List, Optional, Tuple

from ragchat.errors import RerankerError

logger = logging.getLogger(__name__)


class CrossEncoderReranker:
    """Score candidate passages against a query with a cross-encoder.

    Args:
        model_name: Hugging Face model id, e.g. ``BAAI/bge-reranker-v2-m3``.
    """

    def __init__(self, model_name: str):
        self.model_name = model_name
        self._model = None  # lazy-loaded to avoid cold start cost

    def _load_model(self):
        if self._model is not None:
            return self._model
        from sentence_transformers import CrossEncoder

        logger.info("Loading re-ranker model %s", self.model_name)
        self._model = CrossEncoder(self.model_name, trust_remote_code=True)
        return self._model

    def score(self, query: str, passages: List[str]) -> List[float]:
        """Relevance scores aligned with ``passages``; higher is better."""
        if not passages:
            return []
        try:
            model = self._load_model()
            pairs: List[Tuple[str, str]] = [(query, p) for p in passages]
            return [float(s) for s in model.predict(pairs, convert_to_numpy=True).tolist()]
        except Exception as exc:
            logger.exception("Re-ranking %d passages failed", len(passages))
            raise RerankerError(f"re-ranking with {self.model_name} failed: {exc}") from exc

    def rerank(self, query: str, passages: List[str], top_n: Optional[int] = None) -> List[Tuple[int, float]]:
        """Return ``(passage_index, score)`` pairs ordered by descending score.

        Args:
            query: Original user query.
            passages: Candidate passages.
            top_n: Keep only this many pairs when set.
        """
        scores = self.score(query, passages)
        ranked = sorted(enumerate(scores), key=lambda x: x[1], reverse=True)
        return ranked[:top_n] if top_n is not None else ranked
