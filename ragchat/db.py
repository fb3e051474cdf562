"""Database setup and session utilities for SQLAlchemy.

This module centralizes engine/session initialization, metadata base, and helpers:
- init_db: Ensures the pgvector extension exists and creates the points table, its
  collection index, and the IVFFLAT cosine index over points.embedding.
- session_scope: Context-managed transactional scope for imperative workflows.

Configuration is read from ragchat.config.settings.DATABASE_URL.
"""
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ragchat.config import settings

# SQLAlchemy setup
engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def init_db() -> None:
    """Initialize database extensions, tables, and vector indexes.

    This function is idempotent and safe to run multiple times.
    """
    with engine.connect() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        conn.commit()

    # Import models after Base is defined
    from ragchat import models  # noqa: F401

    Base.metadata.create_all(bind=engine)

    # IVFFLAT needs ANALYZE after bulk loads for good recall
    with engine.connect() as conn:
        conn.execute(
            text(
                """
                DO $$
                BEGIN
                    IF NOT EXISTS (
                        SELECT 1 FROM pg_indexes WHERE indexname = 'idx_points_embedding_ivfflat'
                    ) THEN
                        CREATE INDEX idx_points_embedding_ivfflat
                        ON points USING ivfflat (embedding vector_cosine_ops)
                        WITH (lists = 100);
                    END IF;
                END$$;
                """
            )
        )
        conn.commit()


@contextmanager
def session_scope(factory=SessionLocal) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations.

    Commits on successful exit, rolls back and re-raises on exception, and always
    closes the session.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
