"""Medium-style article ingestor.

Chunks article text into overlapping character windows keyed by the article URL,
embeds every chunk, and stores one point per chunk in the articles collection
with the article metadata attached to each payload.

Usage:
  python -m ragchat.ingestion.medium --file article.json

The file holds one article object or a list of them, with the same fields as
the upload endpoint (text, title, url, author, date, language?).

Re-ingesting the same article creates new points; there is no dedup by source.
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, List

from pydantic import ValidationError as PydanticValidationError

from ragchat.chunking import chunk_text
from ragchat.config import configure_logging, settings
from ragchat.embedding import OpenAIEmbedder
from ragchat.errors import EmptyResultError, ValidationError
from ragchat.obs import span
from ragchat.schemas import ArticlePayload, ArticleUploadResponse, MediumArticleUpload
from ragchat.vector_store import PgVectorStore, new_point

logger = logging.getLogger(__name__)


def ingest_medium_article(
    article: MediumArticleUpload,
    embedder: OpenAIEmbedder,
    store: PgVectorStore,
    chunk_size: int | None = None,
    chunk_overlap: int | None = None,
    collection: str | None = None,
) -> ArticleUploadResponse:
    """Chunk, embed and store one validated article.

    Raises:
        EmptyResultError: If chunking produced no chunks.
        EmbeddingError, VectorStoreError: When an upstream call fails.
    """
    url = article.url
    collection = collection or settings.MEDIUM_COLLECTION
    chunks = chunk_text(
        article.text,
        chunk_size or settings.CHUNK_SIZE,
        settings.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap,
        url,
    )
    if not chunks:
        raise EmptyResultError("No chunks created from text")

    with span("ingest_article", {"collection": collection, "chunks": len(chunks)}):
        vectors = embedder.embed_texts([c.content for c in chunks])
        points = [
            new_point(
                vec,
                ArticlePayload(
                    content=c.content,
                    source=c.source,
                    chunk_index=c.chunk_index,
                    title=article.title,
                    author=article.author,
                    date=article.date,
                    language=article.language,
                    url=url,
                ).model_dump(by_alias=True),
            )
            for c, vec in zip(chunks, vectors)
        ]
        uploaded = store.upsert(collection, points)

    logger.info("Ingested article %r: %d chunks into %s", article.title, uploaded, collection)
    return ArticleUploadResponse(
        chunks_created=len(chunks),
        chunks_uploaded=uploaded,
        text_length=len(article.text),
        title=article.title,
    )


def load_articles(path: Path) -> List[MediumArticleUpload]:
    """Load and validate one article or a list of articles from a JSON file.

    Raises:
        ValidationError: If any article fails validation.
    """
    data: Any = json.loads(path.read_text(encoding="utf-8"))
    items = data if isinstance(data, list) else [data]
    try:
        return [MediumArticleUpload.model_validate(item) for item in items]
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


def main():
    parser = argparse.ArgumentParser(description="Ingest Medium-style articles from a JSON file.")
    parser.add_argument("--file", required=True, type=Path, help="JSON file with an article or a list of articles")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity (default: INFO)",
    )
    args = parser.parse_args()
    configure_logging(args.log_level)

    from ragchat.db import init_db
    from ragchat.generation import get_client

    init_db()
    embedder = OpenAIEmbedder(get_client(), settings.OPENAI_EMBEDDING_MODEL, settings.EMBEDDING_DIM)
    store = PgVectorStore()
    try:
        articles = load_articles(args.file)
        total = 0
        for article in articles:
            total += ingest_medium_article(article, embedder, store).chunks_uploaded
        logger.info("Completed ingestion: articles=%d, chunks=%d", len(articles), total)
    except ValidationError as exc:
        logger.error("Invalid article file %s: %s", args.file, exc.details)
        raise SystemExit(2)
    except Exception:
        logger.exception("Ingestion failed for %s", args.file)
        raise


if __name__ == "__main__":
    main()
