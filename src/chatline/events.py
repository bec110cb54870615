"""Events published by the turn controller during a turn."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from chatline.chunks import StreamChunk
from chatline.transcript import Transcript


class TurnState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    CANCELLING = "cancelling"


class TurnOutcome(Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class TurnResult:
    """How a turn ended and the transcript it left behind.

    Args:
        outcome: Whether the stream ended naturally, failed or was
            cancelled.
        transcript: The final transcript snapshot.
        chunk_count: Number of chunks applied during the turn.
        error: The transport exception for ``FAILED`` turns.
    """

    outcome: TurnOutcome
    transcript: Transcript
    chunk_count: int = 0
    error: BaseException | None = None


@dataclass
class TurnEvent:
    """Base for all turn events."""


@dataclass
class SnapshotEvent(TurnEvent):
    """The transcript changed.

    ``chunk`` is the chunk just applied, or ``None`` for the snapshot
    published when the user entry is appended.
    """

    transcript: Transcript
    state: TurnState
    chunk: StreamChunk | None = None


@dataclass
class TurnCompleteEvent(TurnEvent):
    """Final event, always the last event of a turn."""

    result: TurnResult
