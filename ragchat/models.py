"""Database ORM models.

Defines the single persistent entity behind the vector store:
- Point: one embedded unit of content (an article chunk or a whole post) in a
  named collection, with its JSON payload and a pgvector embedding.
"""
import uuid
from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, DateTime, Index, String
from sqlalchemy.dialects.postgresql import JSONB, UUID

from ragchat.config import settings
from ragchat.db import Base


class Point(Base):
    """Vector-embedded point stored in a logical collection.

    Collections are keyed by content type (``medium_articles``,
    ``linkedin_posts``). Points are never updated after creation; re-ingesting a
    document creates new points with new ids.

    Notes:
        The embedding dimension is settings.EMBEDDING_DIM and must match the
        ``dimensions`` requested from the embeddings API.
    """
    __tablename__ = "points"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    collection = Column(String(128), nullable=False)
    embedding = Column(Vector(dim=settings.EMBEDDING_DIM), nullable=False)
    payload = Column(JSONB, nullable=False, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (Index("idx_points_collection", "collection"),)
