"""Client-side chat orchestrator.

Sequences the selection call, the generation call and incremental rendering
for one user turn at a time:

    idle --submit--> awaiting_selection --selection--> streaming --done/error--> idle

A submission while a turn is in flight is rejected (ChatBusyError); there is no
queue. Failures before streaming starts, and streams that end abruptly, raise
ChatRequestFailed carrying a notice to show instead of a partial answer.
Cancelling stops reading the stream; the server may keep generating.
"""
import logging
from enum import Enum
from typing import Dict, Iterator, List, Optional

import requests

from ragchat.config import settings

logger = logging.getLogger(__name__)

FAILURE_NOTICE = "Sorry, something went wrong while answering. Please try again."


class ChatState(str, Enum):
    IDLE = "idle"
    AWAITING_SELECTION = "awaiting_selection"
    STREAMING = "streaming"


class ChatBusyError(RuntimeError):
    """A turn is already in flight."""


class ChatRequestFailed(RuntimeError):
    """A turn failed; ``notice`` is the text to render to the user."""

    def __init__(self, message: str, notice: str = FAILURE_NOTICE):
        super().__init__(message)
        self.notice = notice


class ChatOrchestrator:
    """Drive the select-agent and chat endpoints for a single conversation.

    Args:
        base_url: API base URL; defaults to settings.API_BASE_URL.
        session: HTTP session (a requests.Session or compatible object).
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout or settings.CLIENT_TIMEOUT_SECONDS
        self.state = ChatState.IDLE
        self.messages: List[Dict[str, str]] = []
        self.last_selection: Optional[Dict[str, str]] = None
        self._active: Optional[Iterator[str]] = None
        self._response: Optional[requests.Response] = None

    @property
    def busy(self) -> bool:
        return self.state is not ChatState.IDLE

    def _conversation(self) -> List[Dict[str, str]]:
        """Snapshot of the conversation for a request body."""
        return [dict(m) for m in self.messages]

    def _fail(self, message: str) -> ChatRequestFailed:
        logger.error(message)
        self.state = ChatState.IDLE
        self._active = None
        return ChatRequestFailed(message)

    def _select(self) -> Dict[str, str]:
        try:
            resp = self.session.post(
                f"{self.base_url}/api/select-agent",
                json={"messages": self._conversation()},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise self._fail(f"Agent selection request failed: {exc}")
        if not resp.ok:
            raise self._fail(f"Agent selection failed: {resp.status_code} {resp.text}")
        try:
            data = resp.json()
        except ValueError:
            raise self._fail("Agent selection returned invalid JSON")
        if not data.get("agent") or not data.get("query"):
            raise self._fail(f"Agent selection returned an incomplete body: {data}")
        return data

    def _open_stream(self, selection: Dict[str, str]) -> requests.Response:
        try:
            resp = self.session.post(
                f"{self.base_url}/api/chat",
                json={"messages": self._conversation(), "agent": selection["agent"], "query": selection["query"]},
                stream=True,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise self._fail(f"Chat request failed: {exc}")
        if not resp.ok:
            body = resp.text
            resp.close()
            raise self._fail(f"Chat request failed: {resp.status_code} {body}")
        return resp

    def submit(self, text: str) -> Iterator[str]:
        """Start a turn and return an iterator of answer fragments.

        The selection call and the opening of the generation stream happen before
        this returns; fragments are then read lazily as the caller iterates.

        Raises:
            ChatBusyError: If a turn is already in flight.
            ValueError: If ``text`` is blank.
            ChatRequestFailed: If selection or generation fails before streaming.
        """
        if self.busy:
            raise ChatBusyError("a response is already in progress")
        if not text or not text.strip():
            raise ValueError("message must not be empty")

        self.messages.append({"role": "user", "content": text})
        self.state = ChatState.AWAITING_SELECTION
        selection = self._select()
        self.last_selection = selection
        logger.info("Routing to %s agent", selection["agent"])

        resp = self._open_stream(selection)
        self.state = ChatState.STREAMING
        self._response = resp
        self._active = self._consume(resp)
        return self._active

    def _consume(self, resp: requests.Response) -> Iterator[str]:
        parts: List[str] = []
        completed = False
        try:
            for fragment in resp.iter_content(chunk_size=None, decode_unicode=True):
                if fragment:
                    parts.append(fragment)
                    yield fragment
            completed = True
        except requests.RequestException as exc:
            raise ChatRequestFailed(f"Stream ended unexpectedly: {exc}")
        finally:
            resp.close()
            self.state = ChatState.IDLE
            self._active = None
            self._response = None
            # the API rejects messages with empty content
            if completed and parts:
                self.messages.append({"role": "assistant", "content": "".join(parts)})

    def cancel(self) -> None:
        """Stop reading the active stream, if any, and return to idle."""
        active, resp = self._active, self._response
        if active is not None:
            active.close()
        if resp is not None:
            resp.close()
        self.state = ChatState.IDLE
        self._active = None
        self._response = None

    def ask(self, text: str) -> str:
        """Run a whole turn and return the full answer."""
        return "".join(self.submit(text))
