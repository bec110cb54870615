"""Transcript model: the ordered, append-only list of chat entries.

Entries are frozen pydantic models.  Each variant exposes a ``key``
(``(type, identifier)``) used both to merge streamed chunks into the
right entry and by renderers to key visual blocks.  Allowed mutations
are methods that return a new copy; identity fields never change.

:class:`Transcript` is an immutable snapshot.  ``upsert`` is the one
primitive through which entries are created or changed, and it always
returns a new snapshot, so a reader holding an older snapshot never
sees a later chunk's effects.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_serializer

UNKNOWN_TOOL_NAME = "unknown"


class TranscriptError(Exception):
    """Raised when a mutation would break the transcript's identity rules."""


class ToolCallPhase(Enum):
    STREAMING = "streaming"
    EXECUTING = "executing"
    DONE = "done"

    def advance(self, target: ToolCallPhase) -> ToolCallPhase:
        """Return whichever of ``self`` and ``target`` is later."""
        if _PHASE_ORDER[target] > _PHASE_ORDER[self]:
            return target
        return self


_PHASE_ORDER = {
    ToolCallPhase.STREAMING: 0,
    ToolCallPhase.EXECUTING: 1,
    ToolCallPhase.DONE: 2,
}


class UserMessage(BaseModel):
    type: Literal["user-message"] = "user-message"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    content: str

    model_config = {"frozen": True}

    @property
    def key(self) -> tuple[str, str]:
        return (self.type, self.id)


class AssistantRun(BaseModel):
    """Assistant text accumulated across the fragments of one run."""

    type: Literal["assistant-text"] = "assistant-text"
    run_id: str
    content: str = ""

    model_config = {"frozen": True}

    @property
    def key(self) -> tuple[str, str]:
        return (self.type, self.run_id)

    def extend(self, text: str) -> AssistantRun:
        return self.model_copy(update={"content": self.content + text})


class ToolCall(BaseModel):
    """One tool invocation, from streamed input through to its result.

    ``args_text`` holds the raw argument JSON exactly as streamed and is
    kept for display even after ``args`` (the parsed form) arrives.
    """

    type: Literal["tool-call"] = "tool-call"
    run_id: str = ""
    tool_call_id: str
    tool_name: str = UNKNOWN_TOOL_NAME
    args_text: str = ""
    args: Any = None
    result: Any = None
    is_error: bool = False
    phase: ToolCallPhase = ToolCallPhase.STREAMING

    model_config = {"frozen": True}

    @field_serializer("phase")
    def serialize_phase(self, phase: ToolCallPhase, _info) -> str:
        return phase.value

    @property
    def key(self) -> tuple[str, str]:
        return (self.type, self.tool_call_id)

    def append_args(self, delta: str) -> ToolCall:
        return self.model_copy(update={"args_text": self.args_text + delta})

    def complete_args(self, args: Any) -> ToolCall:
        return self.model_copy(update={
            "args": args,
            "phase": self.phase.advance(ToolCallPhase.EXECUTING),
        })

    def finish(self, result: Any, is_error: bool = False) -> ToolCall:
        return self.model_copy(update={
            "result": result,
            "is_error": is_error,
            "phase": self.phase.advance(ToolCallPhase.DONE),
        })


TranscriptEntry = Annotated[
    Union[UserMessage, AssistantRun, ToolCall],
    Field(discriminator="type"),
]


@dataclass(frozen=True)
class Transcript:
    """Immutable, ordered snapshot of transcript entries."""

    entries: tuple[TranscriptEntry, ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[TranscriptEntry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> TranscriptEntry:
        return self.entries[index]

    def find(
        self, match: Callable[[TranscriptEntry], bool]
    ) -> TranscriptEntry | None:
        """Return the last entry satisfying ``match``, if any."""
        for entry in reversed(self.entries):
            if match(entry):
                return entry
        return None

    def _append(self, entry: TranscriptEntry) -> Transcript:
        if any(e.key == entry.key for e in self.entries):
            raise TranscriptError(f"Duplicate transcript entry {entry.key}")
        return Transcript(entries=self.entries + (entry,))

    def upsert(
        self,
        match: Callable[[TranscriptEntry], bool],
        create: Callable[[], TranscriptEntry],
        update: Callable[[TranscriptEntry], TranscriptEntry],
    ) -> Transcript:
        """Replace the last entry matching ``match`` with ``update(entry)``,
        or append ``create()`` when nothing matches.

        This is the only way entries are added or changed.

        Raises:
            TranscriptError: If ``update`` changes the entry's identity,
                or ``create`` builds an entry whose key already exists.
        """
        for index in range(len(self.entries) - 1, -1, -1):
            existing = self.entries[index]
            if match(existing):
                updated = update(existing)
                if updated.key != existing.key:
                    raise TranscriptError(
                        f"Update changed entry identity "
                        f"{existing.key} -> {updated.key}"
                    )
                entries = list(self.entries)
                entries[index] = updated
                return Transcript(entries=tuple(entries))
        return self._append(create())

    def model_dump(self) -> list[dict]:
        return [entry.model_dump() for entry in self.entries]
