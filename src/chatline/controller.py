import asyncio
import logging
from collections.abc import AsyncIterator, Callable

from chatline.cancellation import CancelToken
from chatline.chunks import StreamChunk
from chatline.events import (
    SnapshotEvent,
    TurnCompleteEvent,
    TurnEvent,
    TurnOutcome,
    TurnResult,
    TurnState,
)
from chatline.instrumentation import (
    record_chunk,
    record_error,
    record_outcome,
    turn_span,
)
from chatline.reducer import reduce
from chatline.transcript import Transcript, UserMessage
from chatline.transport import Transport

logger = logging.getLogger(__name__)

Listener = Callable[[SnapshotEvent], None]

_END = object()


class TurnController:
    """Runs one user turn at a time against a transport.

    The controller owns the transcript.  Each turn appends the user's
    message, streams chunks from the transport, folds every chunk into a
    new transcript snapshot with the reducer, and publishes that
    snapshot to subscribers.  Only one turn runs at a time; submitting
    while a turn is in flight is silently ignored.

    ``submit()`` drains ``iter()``.  ``iter()`` is the streaming entry
    point.

    Args:
        transport: Producer of chunk records for each turn.
        transcript: Starting transcript, empty by default.
    """

    def __init__(
        self,
        transport: Transport,
        transcript: Transcript | None = None,
    ):
        self.transport = transport
        self._transcript = transcript or Transcript()
        self._state = TurnState.IDLE
        self._token: CancelToken | None = None
        self._listeners: list[Listener] = []

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state is not TurnState.IDLE

    @property
    def transcript(self) -> Transcript:
        return self._transcript

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with every published snapshot.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    async def submit(self, text: str) -> TurnResult | None:
        """Run a turn to completion.

        Returns ``None`` when the submit was rejected (blank text or a
        turn already in flight).
        """
        result = None
        async for event in self.iter(text):
            if isinstance(event, TurnCompleteEvent):
                result = event.result
        return result

    def abort(self) -> None:
        """Ask the running turn to stop; a no-op when idle."""
        if self._state is not TurnState.BUSY:
            return
        logger.info("Cancelling turn")
        self._state = TurnState.CANCELLING
        if self._token is not None:
            self._token.cancel()

    async def iter(self, text: str) -> AsyncIterator[TurnEvent]:
        """Run a turn, yielding a snapshot event after every change."""
        if not text.strip():
            logger.debug("Ignoring blank submit")
            return
        if self._state is not TurnState.IDLE:
            logger.debug(f"Ignoring submit while {self._state.value}")
            return

        # The user entry is visible before the stream opens.
        message = UserMessage(content=text)
        self._transcript = self._transcript.upsert(
            lambda entry: entry.key == message.key,
            create=lambda: message,
            update=lambda entry: entry,
        )
        self._state = TurnState.BUSY
        token = self._token = CancelToken()

        outcome = TurnOutcome.COMPLETED
        error: BaseException | None = None
        chunk_count = 0
        async with turn_span(self.transport.name) as span:
            chunks = None
            try:
                yield self._publish(None)
                chunks = self.transport.stream(text, token)
                while True:
                    chunk = await self._next_chunk(chunks, token)
                    if chunk is _END:
                        break
                    self._transcript = reduce(self._transcript, chunk)
                    chunk_count += 1
                    record_chunk(span, chunk)
                    yield self._publish(chunk)
            except Exception as e:
                logger.error(f"Turn failed: {e}")
                record_error(span, e)
                outcome, error = TurnOutcome.FAILED, e
            finally:
                if chunks is not None:
                    await _close(chunks)
                if token.cancelled and error is None:
                    outcome = TurnOutcome.CANCELLED
                self._token = None
                self._state = TurnState.IDLE

            result = TurnResult(
                outcome=outcome,
                transcript=self._transcript,
                chunk_count=chunk_count,
                error=error,
            )
            record_outcome(span, result)
        logger.info(f"Turn {outcome.value} after {chunk_count} chunks")
        yield TurnCompleteEvent(result=result)

    async def _next_chunk(
        self, chunks: AsyncIterator[StreamChunk], token: CancelToken
    ):
        """Wait for the next chunk, or ``_END`` on exhaustion or cancel."""
        if token.cancelled:
            return _END
        pull = asyncio.ensure_future(_pull(chunks))
        cancelled = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait(
                {pull, cancelled}, return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancelled.cancel()
            if not pull.done():
                pull.cancel()
                await asyncio.gather(pull, return_exceptions=True)
        if pull.cancelled():
            return _END
        if token.cancelled:
            # Chunks racing an abort are dropped; retrieve any error too.
            pull.exception()
            return _END
        return pull.result()

    def _publish(self, chunk: StreamChunk | None) -> SnapshotEvent:
        event = SnapshotEvent(
            transcript=self._transcript, state=self._state, chunk=chunk,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Snapshot listener raised")
        return event


async def _pull(chunks: AsyncIterator[StreamChunk]):
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return _END


async def _close(chunks) -> None:
    aclose = getattr(chunks, "aclose", None)
    if aclose is not None:
        await aclose()
