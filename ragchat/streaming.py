"""Single-pass text streams with an explicit terminal event.

TextStream decouples streamed generation from any transport. It wraps an
iterator of text fragments and can be consumed exactly once, either as
events (``delta`` fragments followed by one ``done`` or ``error``) or directly
as text, in which case a failure surfaces as StreamInterruptedError.
``cancel()`` stops consumption and closes the upstream iterator; nothing
guarantees the provider stops generating server-side.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Iterator, List, Optional

from ragchat.errors import StreamInterruptedError

logger = logging.getLogger(__name__)


class StreamEventType(str, Enum):
    DELTA = "delta"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class StreamEvent:
    type: StreamEventType
    text: str = ""
    error: Optional[BaseException] = None


class TextStream:
    """Lazy, forward-only, non-restartable stream of text fragments.

    Args:
        fragments: Source of text fragments, usually a generator over a provider stream.
        on_close: Called once when the stream finishes, fails or is cancelled.
    """

    def __init__(self, fragments: Iterable[str], on_close: Optional[Callable[[], None]] = None):
        self._fragments = iter(fragments)
        self._on_close = on_close
        self._started = False
        self._closed = False
        self.cancelled = False

    @property
    def consumed(self) -> bool:
        return self._started

    def _claim(self) -> None:
        if self._started:
            raise RuntimeError("stream already consumed")
        self._started = True

    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        close = getattr(self._fragments, "close", None)
        if close is not None:
            close()
        if self._on_close is not None:
            self._on_close()

    def events(self) -> Iterator[StreamEvent]:
        """Yield delta events, then exactly one done/error event (none after cancel)."""
        self._claim()
        try:
            for fragment in self._fragments:
                if self.cancelled:
                    return
                if fragment:
                    yield StreamEvent(StreamEventType.DELTA, text=fragment)
        except Exception as exc:
            logger.exception("Stream failed after it started")
            yield StreamEvent(StreamEventType.ERROR, error=exc)
            return
        finally:
            self._close()
        if not self.cancelled:
            yield StreamEvent(StreamEventType.DONE)

    def __iter__(self) -> Iterator[str]:
        for event in self.events():
            if event.type is StreamEventType.DELTA:
                yield event.text
            elif event.type is StreamEventType.ERROR:
                raise StreamInterruptedError(str(event.error)) from event.error

    def cancel(self) -> None:
        """Stop consuming; further fragments are dropped and no terminal event is emitted."""
        self.cancelled = True
        self._close()

    def collect(self) -> str:
        """Consume the whole stream and return the concatenated text."""
        parts: List[str] = list(self)
        return "".join(parts)
