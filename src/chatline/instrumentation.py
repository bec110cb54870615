"""Optional OpenTelemetry tracing of chat turns.

Each turn becomes one ``chat_turn`` span carrying a ``chunk`` event per
applied chunk and the turn's outcome.  Nothing is traced until
:func:`instrument` is called, and ``opentelemetry-api`` is only needed
from that point on.
"""

import importlib.util
import logging
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

_tracer = None


def instrument(*, tracer_name: str = "chatline") -> None:
    """Start tracing turns with the globally configured tracer provider.

    Configure the provider first; ``examples/chat_example.py --trace``
    shows a console exporter setup.

    Raises:
        ImportError: ``opentelemetry-api`` is missing (install the
            ``otel`` extra).
    """
    global _tracer
    if importlib.util.find_spec("opentelemetry.trace") is None:
        raise ImportError(
            "Tracing turns needs opentelemetry-api: "
            "pip install 'chatline[otel]'"
        )
    from opentelemetry import trace
    _tracer = trace.get_tracer(tracer_name)
    if isinstance(_tracer, trace.NoOpTracer):
        logger.warning(
            f"Tracer {tracer_name!r} is a no-op; chat_turn spans "
            f"go nowhere until a TracerProvider is set"
        )
    else:
        logger.info(f"Tracing chat turns with tracer {tracer_name!r}")


def uninstrument() -> None:
    global _tracer
    _tracer = None


@asynccontextmanager
async def turn_span(transport_name: str):
    """Wrap one user turn in a ``chat_turn`` span."""
    if _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(
        f"chat_turn {transport_name}",
        attributes={
            "chatline.operation.name": "chat_turn",
            "chatline.transport": transport_name,
        },
    ) as span:
        yield span


def record_chunk(span, chunk) -> None:
    """Add a ``chunk`` event for an applied chunk."""
    if span is None:
        return
    attributes = {"chatline.chunk.kind": chunk.kind or type(chunk).__name__}
    tool_call_id = getattr(chunk, "tool_call_id", None)
    if tool_call_id:
        attributes["chatline.tool.call.id"] = tool_call_id
    span.add_event("chunk", attributes=attributes)


def record_outcome(span, result) -> None:
    """Set outcome and chunk-count attributes on a turn span."""
    if span is None or result is None:
        return
    span.set_attribute("chatline.turn.outcome", result.outcome.value)
    span.set_attribute("chatline.turn.chunk_count", result.chunk_count)
    span.set_attribute("chatline.transcript.length", len(result.transcript))


def record_error(span, exception: BaseException) -> None:
    """Mark a turn span failed with the transport's exception."""
    if span is None:
        return
    from opentelemetry.trace import Status, StatusCode

    span.record_exception(exception)
    span.set_status(Status(StatusCode.ERROR, f"{type(exception).__name__}: {exception}"))
    span.set_attribute("chatline.turn.error", type(exception).__name__)
