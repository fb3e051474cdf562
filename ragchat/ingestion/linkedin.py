"""LinkedIn post ingestor.

Posts are short, so each one is embedded whole and stored as a single point
(no chunking) in the posts collection.

Usage:
  python -m ragchat.ingestion.linkedin --file posts.jsonl [--min-chars 100]

The bulk CLI reads one post per JSON line (text, author, link, date,
numReactions?), skips posts shorter than --min-chars, uploads the rest one by
one and keeps going past individual failures.
"""
from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List

from pydantic import ValidationError as PydanticValidationError

from ragchat.config import configure_logging, settings
from ragchat.embedding import OpenAIEmbedder
from ragchat.obs import span
from ragchat.schemas import LinkedInPostUpload, PostPayload, PostUploadResponse
from ragchat.vector_store import PgVectorStore, new_point

logger = logging.getLogger(__name__)

DEFAULT_MIN_CHARS = 100


def ingest_linkedin_post(
    post: LinkedInPostUpload,
    embedder: OpenAIEmbedder,
    store: PgVectorStore,
    collection: str | None = None,
) -> PostUploadResponse:
    """Embed and store one validated post as a single point."""
    collection = collection or settings.LINKEDIN_COLLECTION
    with span("ingest_post", {"collection": collection}):
        vector = embedder.embed_query(post.text)
        payload = PostPayload(
            content=post.text,
            author=post.author,
            url=post.link,
            date=post.date,
            likes=post.num_reactions,
        ).model_dump(by_alias=True)
        store.upsert(collection, [new_point(vector, payload)])
    logger.info("Ingested post by %s into %s", post.author, collection)
    return PostUploadResponse(text_length=len(post.text), author=post.author)


@dataclass
class BulkSummary:
    uploaded: int = 0
    failed: int = 0
    rejected: int = 0

    @property
    def valid(self) -> int:
        return self.uploaded + self.failed


def read_posts(lines: Iterable[str]) -> List[LinkedInPostUpload]:
    """Parse JSON lines into posts, skipping blank lines and logging invalid ones."""
    posts: List[LinkedInPostUpload] = []
    for n, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            posts.append(LinkedInPostUpload.model_validate(json.loads(line)))
        except (json.JSONDecodeError, PydanticValidationError) as exc:
            logger.warning("Skipping invalid post on line %d: %s", n, exc)
    return posts


def upload_posts(
    posts: List[LinkedInPostUpload],
    embedder: OpenAIEmbedder,
    store: PgVectorStore,
    min_chars: int = DEFAULT_MIN_CHARS,
) -> BulkSummary:
    """Upload posts with at least ``min_chars`` characters, one at a time."""
    summary = BulkSummary()
    valid = [p for p in posts if len(p.text) >= min_chars]
    summary.rejected = len(posts) - len(valid)
    logger.info("Valid posts (>= %d chars): %d, rejected: %d", min_chars, len(valid), summary.rejected)

    for post in valid:
        try:
            ingest_linkedin_post(post, embedder, store)
            summary.uploaded += 1
            logger.info("Uploaded post %d/%d", summary.uploaded, len(valid))
        except Exception:
            logger.exception("Failed to upload post: %s", post.link)
            summary.failed += 1
    return summary


def main():
    parser = argparse.ArgumentParser(description="Ingest LinkedIn posts from a JSON lines file.")
    parser.add_argument("--file", required=True, type=Path, help="JSONL file, one post per line")
    parser.add_argument("--min-chars", type=int, default=DEFAULT_MIN_CHARS, help="Skip shorter posts")
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
    with args.file.open("r", encoding="utf-8") as f:
        posts = read_posts(f)
    logger.info("Found %d LinkedIn posts in %s", len(posts), args.file)

    summary = upload_posts(posts, embedder, PgVectorStore(), min_chars=args.min_chars)
    logger.info(
        "Summary: uploaded=%d failed=%d total_valid=%d", summary.uploaded, summary.failed, summary.valid
    )
    if summary.failed:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
