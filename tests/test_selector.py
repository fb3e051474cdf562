from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from ragchat.config import AgentConfig, default_agent_catalog
from ragchat.schemas import AgentName, AgentSelection, Message
from ragchat.selector import (
    AgentSelector,
    SelectionResult,
    build_router_prompt,
    last_user_message,
    recent_window,
    resolve_selection,
)


def _msgs(*pairs):
    return [Message(role=r, content=c) for r, c in pairs]


def _router(parsed):
    client = MagicMock()
    client.responses.parse.return_value = SimpleNamespace(output_parsed=parsed)
    return client


def _selector(client, **kwargs):
    return AgentSelector(client, "gpt-4o-mini", default_agent_catalog(), **kwargs)


def test_recent_window_keeps_last_messages_in_order():
    messages = _msgs(*[("user", str(i)) for i in range(8)])
    assert [m.content for m in recent_window(messages, 5)] == ["3", "4", "5", "6", "7"]
    assert len(recent_window(messages[:2], 5)) == 2


def test_last_user_message_prefers_user_role():
    messages = _msgs(("user", "first"), ("user", "latest"), ("assistant", "reply"))
    assert last_user_message(messages) == "latest"
    assert last_user_message(_msgs(("assistant", "only"))) == "only"
    assert last_user_message([]) == ""


def test_router_prompt_lists_catalog():
    prompt = build_router_prompt(default_agent_catalog())
    assert '"linkedin"' in prompt
    assert '"rag"' in prompt


def test_classifies_linkedin_request():
    client = _router(AgentSelection(agent=AgentName.LINKEDIN, query="Polish this post about hiring"))
    messages = _msgs(("user", "Can you polish my LinkedIn post about hiring?"))

    selection = _selector(client).select(messages)

    assert selection.agent is AgentName.LINKEDIN
    assert selection.query


def test_classifies_documentation_question():
    client = _router(AgentSelection(agent=AgentName.RAG, query="How do I verify Stripe webhook signatures?"))
    selection = _selector(client).select(_msgs(("user", "how do webhooks get verified?")))
    assert selection.agent is AgentName.RAG


def test_only_recent_window_is_sent_to_router():
    client = _router(AgentSelection(agent=AgentName.RAG, query="q"))
    messages = _msgs(*[("user" if i % 2 == 0 else "assistant", f"m{i}") for i in range(9)])

    _selector(client, window=5).select(messages)

    sent = client.responses.parse.call_args.kwargs["input"]
    assert sent[0]["role"] == "system"
    assert [m["content"] for m in sent[1:]] == ["m4", "m5", "m6", "m7", "m8"]
    assert client.responses.parse.call_args.kwargs["text_format"] is AgentSelection


def test_unparseable_output_falls_back_to_rag_with_last_user_message():
    client = _router(None)
    messages = _msgs(("user", "older"), ("assistant", "answer"), ("user", "what about refunds?"))

    selector = _selector(client)
    result = selector.classify(messages)
    selection = selector.select(messages)

    assert not result.ok
    assert result.error is not None
    assert selection.agent is AgentName.RAG
    assert selection.query == "what about refunds?"


def test_empty_refined_query_falls_back():
    client = _router(AgentSelection.model_construct(agent=AgentName.LINKEDIN, query="  "))
    selection = _selector(client).select(_msgs(("user", "write me a post")))
    assert selection.agent is AgentName.RAG
    assert selection.query == "write me a post"


def test_api_error_falls_back():
    client = MagicMock()
    client.responses.parse.side_effect = openai.APIConnectionError(
        request=httpx.Request("POST", "https://api.openai.com/v1/responses")
    )
    selection = _selector(client).select(_msgs(("user", "hello")))
    assert selection.agent is AgentName.RAG
    assert selection.query == "hello"


def test_agent_outside_catalog_falls_back():
    catalog = {AgentName.RAG: AgentConfig(name="RAG Agent", description="docs")}
    client = _router(AgentSelection(agent=AgentName.LINKEDIN, query="post"))
    selector = AgentSelector(client, "m", catalog)

    assert not selector.classify(_msgs(("user", "post"))).ok
    assert selector.select(_msgs(("user", "post"))).agent is AgentName.RAG


def test_resolve_selection_passes_success_through():
    chosen = AgentSelection(agent=AgentName.LINKEDIN, query="q")
    assert resolve_selection(SelectionResult(selection=chosen), []) is chosen


@pytest.mark.parametrize("agent", list(AgentName))
def test_selected_agent_is_always_a_known_agent(agent):
    client = _router(AgentSelection(agent=agent, query="q"))
    assert _selector(client).select(_msgs(("user", "q"))).agent in set(AgentName)
