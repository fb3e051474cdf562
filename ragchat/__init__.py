"""Application package for the agent-routed RAG chat service.

Submodules overview:
- main: FastAPI application, routes and error translation.
- deps: Construction of long-lived components as FastAPI dependencies.
- config: Application settings, agent catalog and logging setup.
- schemas: Pydantic request/response models and stored payload types.
- errors: Error taxonomy shared across the pipeline.
- chunking: Fixed-size overlapping character chunker.
- embedding: OpenAI embeddings at a fixed dimension.
- db / models / vector_store: PostgreSQL + pgvector collections.
- reranker: Cross-encoder re-ranking.
- retrieval: Embed, over-fetch, re-rank and context assembly.
- selector: LLM routing of a conversation to an agent.
- agents / generation / streaming: Streamed answers from the specialized agents.
- orchestrator: Client that sequences selection and streamed generation.
- ingestion: Per content type upload pipelines and bulk CLIs.
- obs: OpenTelemetry spans.
"""
