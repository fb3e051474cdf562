"""LLM-based routing of a conversation to a specialized agent.

Defines:
- SelectionResult: explicit success/failure value of one routing attempt.
- recent_window / build_router_prompt / last_user_message: pure helpers.
- resolve_selection: pure fallback resolution (``rag`` + last user message).
- AgentSelector: constrained-output OpenAI call validated against AgentSelection.

Routing is a classification task, so the model is sampled at low temperature.
Refined query text is still not deterministic; only the agent category is
stable enough to assert on.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from openai import OpenAI, OpenAIError
from pydantic import ValidationError as PydanticValidationError

from ragchat.config import AgentConfig
from ragchat.errors import SelectionParseError
from ragchat.obs import span
from ragchat.schemas import AgentName, AgentSelection, Message

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 5
FALLBACK_AGENT = AgentName.RAG


@dataclass(frozen=True)
class SelectionResult:
    """Outcome of one routing call: exactly one of ``selection`` or ``error`` is set."""
    selection: Optional[AgentSelection] = None
    error: Optional[SelectionParseError] = None

    @property
    def ok(self) -> bool:
        return self.selection is not None


def recent_window(messages: Sequence[Message], size: int = DEFAULT_WINDOW) -> List[Message]:
    """Return the last ``size`` messages, oldest first."""
    return list(messages[-size:]) if size > 0 else []


def last_user_message(messages: Sequence[Message]) -> str:
    """Content of the most recent user message, else of the last message, else ''."""
    for m in reversed(messages):
        if m.role == "user":
            return m.content
    return messages[-1].content if messages else ""


def build_router_prompt(catalog: Dict[AgentName, AgentConfig]) -> str:
    """System prompt listing the available agents and their descriptions."""
    agent_descriptions = "\n".join(f'- "{name.value}": {cfg.description}' for name, cfg in catalog.items())
    return (
        "You are an agent router. Based on the conversation history, determine which agent "
        "should handle the request and refine the query if needed.\n\n"
        f"Available agents:\n{agent_descriptions}\n\n"
        "Select the most appropriate agent and refine the user's latest request into a specific, "
        "actionable query. Resolve references to earlier messages so the query stands on its own."
    )


def resolve_selection(result: SelectionResult, messages: Sequence[Message]) -> AgentSelection:
    """Turn a routing outcome into a usable selection.

    Successful results pass through. Failures fall back to the ``rag`` agent with
    the verbatim last user message as the query.
    """
    if result.selection is not None:
        return result.selection
    return AgentSelection.model_construct(agent=FALLBACK_AGENT, query=last_user_message(messages))


class AgentSelector:
    """Classify a conversation into an AgentSelection.

    Args:
        client: OpenAI client.
        model: Router model name.
        catalog: Agents the router may choose from.
        window: Number of most recent messages used as routing context.
        temperature: Sampling temperature for the routing call.
    """

    def __init__(
        self,
        client: OpenAI,
        model: str,
        catalog: Dict[AgentName, AgentConfig],
        window: int = DEFAULT_WINDOW,
        temperature: float = 0.0,
    ):
        self.client = client
        self.model = model
        self.catalog = catalog
        self.window = window
        self.temperature = temperature
        self._system_prompt = build_router_prompt(catalog)

    def classify(self, messages: Sequence[Message]) -> SelectionResult:
        """Run the routing call; model and schema failures come back as an error value."""
        recent = recent_window(messages, self.window)
        model_input = [{"role": "system", "content": self._system_prompt}]
        model_input += [{"role": m.role, "content": m.content} for m in recent]
        try:
            response = self.client.responses.parse(
                model=self.model,
                input=model_input,
                text_format=AgentSelection,
                temperature=self.temperature,
            )
            parsed = response.output_parsed
            if parsed is None:
                return SelectionResult(error=SelectionParseError("router returned no parseable selection"))
            # parse() does not run field validators on every SDK version
            selection = AgentSelection.model_validate(parsed.model_dump())
        except (OpenAIError, PydanticValidationError) as exc:
            return SelectionResult(error=SelectionParseError(f"router output rejected: {exc}"))
        if selection.agent not in self.catalog:
            return SelectionResult(error=SelectionParseError(f"agent {selection.agent.value!r} not in catalog"))
        return SelectionResult(selection=selection)

    def select(self, messages: Sequence[Message]) -> AgentSelection:
        """Classify ``messages`` and apply the fallback policy; never raises for model failures."""
        with span("select_agent", {"messages": len(messages), "window": self.window}):
            result = self.classify(messages)
            if not result.ok:
                logger.warning("Agent selection fell back to %s: %s", FALLBACK_AGENT.value, result.error)
            selection = resolve_selection(result, messages)
        logger.info("Selected agent %s", selection.agent.value)
        return selection
