"""Error taxonomy shared by the pipeline, the API boundary and the CLIs.

- ValidationError: malformed or missing request fields (field-level details).
- UpstreamServiceError: an embedding, vector-store, re-ranker or generation call
  failed (cause logged, never retried here).
- EmptyResultError: chunking produced nothing.
- SelectionParseError: the router's structured output was unusable; recovered by
  the selector's fallback and never surfaced to the user.
- StreamInterruptedError: a response stream failed after it had started.

HTTP status codes are chosen per endpoint in ragchat.main.
"""
from typing import Any, Dict, List, Optional


class RagChatError(Exception):
    """Base class for project errors."""


class ValidationError(RagChatError):
    """Invalid request fields."""

    def __init__(self, message: str = "Validation failed", details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.details = details or []

    @classmethod
    def from_pydantic(cls, exc) -> "ValidationError":
        """Build from a ``pydantic.ValidationError`` keeping its field-level errors."""
        details = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
            for e in exc.errors()
        ]
        return cls(details=details)


class UpstreamServiceError(RagChatError):
    """An external service call failed."""


class EmbeddingError(UpstreamServiceError):
    """Embedding backend failed or is misconfigured."""


class EmbeddingDimensionError(EmbeddingError):
    """A vector does not have the configured system-wide dimension."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"embedding dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class VectorStoreError(UpstreamServiceError):
    """Vector store backend failed."""


class RerankerError(UpstreamServiceError):
    """Re-ranking failed or is not configured."""


class GenerationError(UpstreamServiceError):
    """The generation model call could not be started."""


class EmptyResultError(RagChatError):
    """An operation that must produce items produced none."""


class SelectionParseError(RagChatError):
    """The router returned no selection that passes schema validation."""


class StreamInterruptedError(RagChatError):
    """A started response stream ended with an error instead of completing."""
