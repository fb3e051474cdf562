"""Streaming answer generation using OpenAI chat completions.

Provides:
- get_client: Cached OpenAI client shared by embeddings, routing and generation
- stream_chat: Open a streamed chat completion and expose it as a TextStream

Configuration is read from ragchat.config.settings.
"""
import logging
from typing import Dict, Iterator, List

from openai import OpenAI, OpenAIError

from ragchat.config import settings
from ragchat.errors import GenerationError
from ragchat.streaming import TextStream

logger = logging.getLogger(__name__)

_client: OpenAI | None = None


def get_client() -> OpenAI:
    """Return a cached OpenAI client using the configured API key.

    Returns:
        OpenAI: Client instance reused across calls.
    """
    global _client
    if _client is None:
        _client = OpenAI(api_key=settings.OPENAI_API_KEY)
    return _client


def _deltas(stream) -> Iterator[str]:
    for chunk in stream:
        if not chunk.choices:
            continue
        content = chunk.choices[0].delta.content
        if content:
            yield content


def stream_chat(
    client: OpenAI,
    model: str,
    messages: List[Dict[str, str]],
    temperature: float,
) -> TextStream:
    """Start a streamed chat completion.

    The request is sent before this function returns, so connection and
    authentication failures raise GenerationError while the caller can still
    answer with a JSON error. Failures after that end the returned stream.

    Args:
        client: OpenAI client.
        model: Chat model name (may be a fine-tuned model id).
        messages: Chat messages including the system prompt.
        temperature: Sampling temperature.

    Returns:
        TextStream: Content deltas in arrival order.
    """
    try:
        stream = client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
            stream=True,
        )
    except OpenAIError as exc:
        logger.exception("Failed to start generation with %s", model)
        raise GenerationError(f"generation with {model} failed: {exc}") from exc
    return TextStream(_deltas(stream), on_close=stream.close)
