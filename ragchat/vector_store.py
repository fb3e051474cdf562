"""pgvector-backed vector store with one logical collection per content type.

Provides:
- StoredPoint / ScoredPoint: points written to and returned from the store.
- PgVectorStore: upsert, cosine nearest-neighbour search and count per collection.

Every vector is checked against the configured dimension before any database
work; a mismatch is a hard failure (EmbeddingDimensionError). Database failures
surface as VectorStoreError.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ragchat.config import settings
from ragchat.db import SessionLocal, session_scope
from ragchat.errors import EmbeddingDimensionError, VectorStoreError
from ragchat.models import Point

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredPoint:
    id: uuid.UUID
    vector: List[float]
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ScoredPoint:
    id: str
    score: float
    payload: Dict[str, Any]


def new_point(vector: List[float], payload: Dict[str, Any]) -> StoredPoint:
    """Create a point with a fresh random id."""
    return StoredPoint(id=uuid.uuid4(), vector=list(vector), payload=dict(payload))


def _vector_literal(vec: Sequence[float]) -> str:
    """Render a vector in pgvector's text input format."""
    return "[" + ",".join(f"{x:.6f}" for x in vec) + "]"


_SEARCH_SQL = text(
    """
    SELECT id, payload,
        (embedding <=> CAST(:qvec AS vector)) AS distance
    FROM points
    WHERE collection = :collection
    ORDER BY embedding <=> CAST(:qvec AS vector)
    LIMIT :limit
    """
)

_COUNT_SQL = text("SELECT count(*) FROM points WHERE collection = :collection")


class PgVectorStore:
    """Vector store over the ``points`` table.

    Args:
        session_factory: Callable returning a new SQLAlchemy Session.
        dim: Expected vector dimension; defaults to settings.EMBEDDING_DIM.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal, dim: Optional[int] = None):
        self.session_factory = session_factory
        self.dim = dim or settings.EMBEDDING_DIM

    def _check_dim(self, vec: Sequence[float]) -> None:
        if len(vec) != self.dim:
            raise EmbeddingDimensionError(self.dim, len(vec))

    def upsert(self, collection: str, points: Sequence[StoredPoint]) -> int:
        """Write points into a collection in one transaction.

        Returns:
            int: Number of points written.
        """
        for p in points:
            self._check_dim(p.vector)
        if not points:
            return 0
        try:
            with session_scope(self.session_factory) as db:
                for p in points:
                    db.merge(
                        Point(id=p.id, collection=collection, embedding=list(p.vector), payload=dict(p.payload))
                    )
        except SQLAlchemyError as exc:
            logger.exception("Upsert of %d points into %s failed", len(points), collection)
            raise VectorStoreError(f"upsert into {collection} failed: {exc}") from exc
        logger.debug("Upserted %d points into %s", len(points), collection)
        return len(points)

    def search(self, collection: str, vector: Sequence[float], limit: int) -> List[ScoredPoint]:
        """Return the ``limit`` nearest points by cosine similarity, best first.

        Similarity is ``1 - cosine distance``.
        """
        self._check_dim(vector)
        params = {"qvec": _vector_literal(vector), "collection": collection, "limit": int(limit)}
        try:
            with session_scope(self.session_factory) as db:
                rows = db.execute(_SEARCH_SQL, params).mappings().all()
        except SQLAlchemyError as exc:
            logger.exception("Search in %s failed", collection)
            raise VectorStoreError(f"search in {collection} failed: {exc}") from exc
        return [
            ScoredPoint(
                id=str(r["id"]),
                score=1.0 - float(r["distance"]),
                payload=dict(r["payload"] or {}),
            )
            for r in rows
        ]

    def count(self, collection: str) -> int:
        """Number of points stored in a collection."""
        try:
            with session_scope(self.session_factory) as db:
                return int(db.execute(_COUNT_SQL, {"collection": collection}).scalar() or 0)
        except SQLAlchemyError as exc:
            raise VectorStoreError(f"count of {collection} failed: {exc}") from exc
