"""Specialized response agents.

Both agents consume an AgentRequest and return a TextStream:
- LinkedInAgent: static post-editor instruction plus the refined query; no retrieval.
- RagAgent: retrieves context through the RetrievalPipeline and answers grounded
  in it, saying so explicitly when the context is insufficient.

build_agents wires the registry used by the generation endpoint.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List

from openai import OpenAI

from ragchat.config import Settings
from ragchat.generation import stream_chat
from ragchat.obs import span
from ragchat.retrieval import RetrievalPipeline, RetrievalResult
from ragchat.schemas import AgentName, Message
from ragchat.streaming import TextStream

logger = logging.getLogger(__name__)

LINKEDIN_SYSTEM_PROMPT = (
    "You are a LinkedIn post editor. Polish the user's LinkedIn post to make it more engaging, "
    "professional, and impactful while maintaining their authentic voice and message. When the "
    "user only gives a topic, write the post from scratch in that voice."
)

NO_CONTEXT_NOTICE = "No relevant context was found in the documentation for this request."


@dataclass(frozen=True)
class AgentRequest:
    """Input shared by all agents.

    Attributes:
        original_query: The user's latest message, verbatim.
        query: Refined query produced by the selector.
        messages: Conversation, oldest first.
    """
    original_query: str
    query: str
    messages: List[Message] = field(default_factory=list)


def _chat_messages(system_prompt: str, messages: List[Message]) -> List[Dict[str, str]]:
    return [{"role": "system", "content": system_prompt}] + [
        {"role": m.role, "content": m.content} for m in messages
    ]


def build_linkedin_prompt(query: str) -> str:
    return f"{LINKEDIN_SYSTEM_PROMPT}\n\nTask: {query}"


def build_rag_prompt(original_query: str, query: str, retrieved: RetrievalResult) -> str:
    """System prompt grounding the answer in retrieved documentation.

    The prompt always carries the instruction to say clearly when the context does
    not answer the question; with no context at all it states that nothing was found.
    """
    context = retrieved.context if not retrieved.is_empty else NO_CONTEXT_NOTICE
    prompt = (
        "You are a helpful assistant that answers questions based on the provided context.\n\n"
        f'Original user request: "{original_query}"\n'
        f'Refined query: "{query}"\n\n'
        f"Context from documentation:\n{context}\n\n"
        "Use the context above to answer the user's question. If the context doesn't contain "
        "enough information, say so clearly instead of guessing."
    )
    if retrieved.is_empty:
        prompt += (
            "\n\nNo context is available for this request. Tell the user that the documentation "
            "does not cover it and do not invent an answer."
        )
    return prompt


class Agent(ABC):
    """A response-generation strategy selected by the router."""

    name: AgentName

    @abstractmethod
    def respond(self, request: AgentRequest) -> TextStream:
        """Start a streamed answer for ``request``."""


class LinkedInAgent(Agent):
    """Drafts or polishes LinkedIn posts with a (possibly fine-tuned) model."""

    name = AgentName.LINKEDIN

    def __init__(self, client: OpenAI, model: str, temperature: float = 0.8):
        self.client = client
        self.model = model
        self.temperature = temperature

    def respond(self, request: AgentRequest) -> TextStream:
        messages = _chat_messages(build_linkedin_prompt(request.query), request.messages)
        with span("generate", {"agent": self.name.value, "model": self.model}):
            return stream_chat(self.client, self.model, messages, self.temperature)


class RagAgent(Agent):
    """Answers from retrieved documentation context.

    Args:
        client: OpenAI client.
        model: Chat model name.
        pipeline: Retrieval pipeline to fetch context.
        final_k: Passages placed in the prompt.
        over_fetch_k: Candidates fetched before re-ranking.
        use_rerank: Whether to re-rank candidates.
        temperature: Sampling temperature.
    """

    name = AgentName.RAG

    def __init__(
        self,
        client: OpenAI,
        model: str,
        pipeline: RetrievalPipeline,
        final_k: int = 5,
        over_fetch_k: int = 10,
        use_rerank: bool = True,
        temperature: float = 0.3,
    ):
        self.client = client
        self.model = model
        self.pipeline = pipeline
        self.final_k = final_k
        self.over_fetch_k = over_fetch_k
        self.use_rerank = use_rerank
        self.temperature = temperature

    def respond(self, request: AgentRequest) -> TextStream:
        retrieved = self.pipeline.retrieve(
            request.query,
            over_fetch_k=self.over_fetch_k,
            final_k=self.final_k,
            use_rerank=self.use_rerank,
        )
        if retrieved.is_empty:
            logger.info("No context found for query %r", request.query)
        system_prompt = build_rag_prompt(request.original_query, request.query, retrieved)
        messages = _chat_messages(system_prompt, request.messages)
        with span("generate", {"agent": self.name.value, "model": self.model, "passages": len(retrieved)}):
            return stream_chat(self.client, self.model, messages, self.temperature)


def build_agents(settings: Settings, client: OpenAI, pipeline: RetrievalPipeline) -> Dict[AgentName, Agent]:
    """Construct the agent registry from configuration."""
    return {
        AgentName.LINKEDIN: LinkedInAgent(client, settings.LINKEDIN_MODEL, settings.LINKEDIN_TEMPERATURE),
        AgentName.RAG: RagAgent(
            client,
            settings.OPENAI_MODEL,
            pipeline,
            final_k=settings.RETRIEVAL_FINAL_K,
            over_fetch_k=settings.RETRIEVAL_OVERFETCH_K,
            use_rerank=settings.RERANKER_ENABLED,
            temperature=settings.RAG_TEMPERATURE,
        ),
    }
