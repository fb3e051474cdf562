"""Observability utilities providing OpenTelemetry spans.

A console exporter is installed once when settings.OTEL_CONSOLE_EXPORT is set;
otherwise spans go to whatever tracer provider the host process configured
(the OpenTelemetry default is a no-op provider).
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from ragchat.config import settings

logger = logging.getLogger(__name__)

_otel_inited: bool = False


def _init_otel() -> None:
    """Install a console-exporting tracer provider once, when enabled."""
    global _otel_inited
    if _otel_inited:
        return
    _otel_inited = True
    if not settings.OTEL_CONSOLE_EXPORT:
        return
    tp = TracerProvider()
    tp.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(tp)


@contextmanager
def span(name: str, attributes: Optional[Dict[str, Any]] = None) -> Iterator[Any]:
    """Run the enclosed block inside an OpenTelemetry span.

    Exceptions raised by the block are recorded on the span and re-raised.
    """
    _init_otel()
    tracer = trace.get_tracer("ragchat")
    with tracer.start_as_current_span(name) as current:
        for k, v in (attributes or {}).items():
            if v is None:
                continue
            try:
                current.set_attribute(k, v)
            except Exception:
                logger.debug("Dropping span attribute %s on %s", k, name)
        yield current
