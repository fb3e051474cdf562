"""FastAPI dependencies building the long-lived pipeline components.

Each getter constructs its component once from settings and reuses it. Tests
replace them through ``app.dependency_overrides``.
"""
from functools import lru_cache
from typing import Dict, Optional

from ragchat.agents import Agent, build_agents
from ragchat.config import default_agent_catalog, settings
from ragchat.embedding import OpenAIEmbedder
from ragchat.generation import get_client
from ragchat.reranker import CrossEncoderReranker
from ragchat.retrieval import RetrievalPipeline
from ragchat.schemas import AgentName
from ragchat.selector import AgentSelector
from ragchat.vector_store import PgVectorStore


@lru_cache(maxsize=1)
def get_embedder() -> OpenAIEmbedder:
    return OpenAIEmbedder(get_client(), settings.OPENAI_EMBEDDING_MODEL, settings.EMBEDDING_DIM)


@lru_cache(maxsize=1)
def get_vector_store() -> PgVectorStore:
    return PgVectorStore()


@lru_cache(maxsize=1)
def get_reranker() -> Optional[CrossEncoderReranker]:
    if not settings.RERANKER_ENABLED:
        return None
    return CrossEncoderReranker(settings.RERANKER_MODEL_NAME)


@lru_cache(maxsize=1)
def get_pipeline() -> RetrievalPipeline:
    return RetrievalPipeline(get_embedder(), get_vector_store(), get_reranker(), settings.RAG_COLLECTION)


@lru_cache(maxsize=1)
def get_selector() -> AgentSelector:
    return AgentSelector(
        get_client(),
        settings.OPENAI_SELECTOR_MODEL,
        default_agent_catalog(),
        window=settings.SELECTOR_HISTORY_WINDOW,
        temperature=settings.SELECTOR_TEMPERATURE,
    )


@lru_cache(maxsize=1)
def get_agents() -> Dict[AgentName, Agent]:
    return build_agents(settings, get_client(), get_pipeline())
