"""Ingestion package: content-type specific upload pipelines.

Each module validates one content type, embeds it, and stores points in that
type's collection. They back the upload endpoints and the bulk CLIs:
- medium: long-form articles, chunked before embedding (one point per chunk).
- linkedin: short posts, embedded whole (one point per post).
"""
