"""FastAPI application entrypoint and routes.

Exposes health, ingestion (per content type), agent selection, streamed
generation and a retrieval-only diagnostic endpoint, configures CORS, logging
and error translation, and initializes the database schema at startup.

Error bodies are always ``{"error": ..., "details"?: ...}``: request validation
failures are 400 ``"Validation failed"``; other failures before a stream starts
are endpoint-specific 500s. A failure after streaming has begun cannot become a
JSON body and aborts the response instead.
"""
import logging
from typing import Dict

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from ragchat.agents import Agent, AgentRequest
from ragchat.config import configure_logging, settings
from ragchat.deps import get_agents, get_embedder, get_pipeline, get_selector, get_vector_store
from ragchat.embedding import OpenAIEmbedder
from ragchat.errors import EmptyResultError
from ragchat.ingestion.linkedin import ingest_linkedin_post
from ragchat.ingestion.medium import ingest_medium_article
from ragchat.obs import span
from ragchat.retrieval import RetrievalPipeline
from ragchat.schemas import (
    AgentName,
    ArticleUploadResponse,
    ChatRequest,
    LinkedInPostUpload,
    MediumArticleUpload,
    PostUploadResponse,
    RagTestMatch,
    RagTestRequest,
    RagTestResponse,
    SelectAgentRequest,
)
from ragchat.selector import AgentSelector, last_user_message
from ragchat.vector_store import PgVectorStore

logger = logging.getLogger(__name__)

app = FastAPI(title="RAG Chat API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # keep simple for local development; tighten for prod
    allow_methods=["*"],
    allow_credentials=True,
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    """Configure logging and ensure the vector schema exists."""
    configure_logging()
    if settings.INIT_DB_ON_STARTUP:
        from ragchat.db import init_db

        init_db()


def _error(status_code: int, error: str, details=None) -> JSONResponse:
    content = {"error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


@app.exception_handler(RequestValidationError)
def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(400, "Validation failed", exc.errors())


@app.get("/health")
def health():
    """Liveness probe endpoint.

    Returns:
        dict: {"status": "ok"} when the service is running.
    """
    return {"status": "ok"}


@app.post("/api/upload/medium-article", response_model=ArticleUploadResponse)
def upload_medium_article(
    article: MediumArticleUpload,
    embedder: OpenAIEmbedder = Depends(get_embedder),
    store: PgVectorStore = Depends(get_vector_store),
):
    """Chunk, embed and store a long-form article (one point per chunk)."""
    try:
        return ingest_medium_article(article, embedder, store)
    except EmptyResultError as exc:
        return _error(400, str(exc))
    except Exception as exc:
        logger.exception("Error uploading Medium article")
        return _error(500, "Failed to upload Medium article", str(exc))


@app.post("/api/upload/linkedin-post", response_model=PostUploadResponse)
def upload_linkedin_post(
    post: LinkedInPostUpload,
    embedder: OpenAIEmbedder = Depends(get_embedder),
    store: PgVectorStore = Depends(get_vector_store),
):
    """Embed and store a short post as a single point (no chunking)."""
    try:
        return ingest_linkedin_post(post, embedder, store)
    except Exception as exc:
        logger.exception("Error uploading LinkedIn post")
        return _error(500, "Failed to upload LinkedIn post", str(exc))


@app.post("/api/select-agent")
def select_agent(req: SelectAgentRequest, selector: AgentSelector = Depends(get_selector)):
    """Route the conversation to an agent; falls back to ``rag`` instead of failing."""
    try:
        selection = selector.select(req.messages)
    except Exception:
        logger.exception("Error selecting agent")
        return _error(500, "Failed to select agent")
    return {"agent": selection.agent.value, "query": selection.query}


@app.post("/api/chat")
def chat(req: ChatRequest, agents: Dict[AgentName, Agent] = Depends(get_agents)):
    """Stream the selected agent's answer as plain-text fragments."""
    agent = agents.get(req.agent)
    if agent is None:
        return _error(500, "Failed to generate response", f"agent {req.agent.value!r} is not available")
    request = AgentRequest(
        original_query=last_user_message(req.messages),
        query=req.query,
        messages=list(req.messages),
    )
    try:
        stream = agent.respond(request)
    except Exception as exc:
        logger.exception("Error starting %s agent", req.agent.value)
        return _error(500, "Failed to generate response", str(exc))
    return StreamingResponse(
        iter(stream),
        media_type="text/plain; charset=utf-8",
        headers={"X-Agent": req.agent.value},
    )


@app.post("/api/rag-test", response_model=RagTestResponse)
def rag_test(req: RagTestRequest, pipeline: RetrievalPipeline = Depends(get_pipeline)):
    """Return raw nearest-neighbour matches for a query without generating an answer."""
    collection = req.collection or pipeline.collection
    top_k = req.top_k or settings.RAG_TEST_DEFAULT_TOP_K
    try:
        with span("rag_test", {"collection": collection, "top_k": top_k}):
            points = pipeline.search(req.query, top_k, collection)
    except Exception as exc:
        logger.exception("Error running retrieval test")
        return _error(500, "Failed to retrieve documents", str(exc))
    return RagTestResponse(
        query=req.query,
        collection=collection,
        matches=[RagTestMatch(id=p.id, score=p.score, payload=p.payload) for p in points],
    )
