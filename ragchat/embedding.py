"""Embedding utilities wrapping OpenAI's embeddings API.

Provides:
- OpenAIEmbedder: batch and single-text embedding at a fixed dimension.

Every returned vector must have exactly the configured dimension; anything
else raises EmbeddingDimensionError instead of being stored or searched.
"""
import logging
from typing import List

from openai import OpenAI, OpenAIError

from ragchat.errors import EmbeddingDimensionError, EmbeddingError

logger = logging.getLogger(__name__)


class OpenAIEmbedder:
    """Turn text into fixed-dimension vectors.

    Args:
        client: OpenAI client.
        model: Embedding model name.
        dimensions: Requested and enforced vector length.
    """

    def __init__(self, client: OpenAI, model: str, dimensions: int):
        self.client = client
        self.model = model
        self.dimensions = dimensions

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        """Embed a batch of texts, one vector per input in input order."""
        if not texts:
            return []
        try:
            resp = self.client.embeddings.create(model=self.model, dimensions=self.dimensions, input=texts)
        except OpenAIError as exc:
            logger.exception("Embedding %d texts with %s failed", len(texts), self.model)
            raise EmbeddingError(f"embedding failed: {exc}") from exc
        vectors = [list(d.embedding) for d in resp.data]
        if len(vectors) != len(texts):
            raise EmbeddingError(f"expected {len(texts)} embeddings, got {len(vectors)}")
        for v in vectors:
            if len(v) != self.dimensions:
                raise EmbeddingDimensionError(self.dimensions, len(v))
        return vectors

    def embed_query(self, text: str) -> List[float]:
        """Embed a single query string."""
        return self.embed_texts([text])[0]
