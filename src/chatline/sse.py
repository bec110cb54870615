"""Server-Sent Events decoding for agent data streams."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


async def iter_sse_data(lines: AsyncIterable[str]) -> AsyncIterator[dict]:
    """Yield the JSON object carried by each SSE event in ``lines``.

    Consecutive ``data:`` lines of one event are joined with newlines.
    Comments, ``event:``/``id:`` fields and payloads that are not JSON
    objects are skipped.  Stops at a ``[DONE]`` payload.
    """
    buffer: list[str] = []
    async for line in lines:
        line = line.rstrip("\r\n")
        if line:
            if line.startswith("data:"):
                value = line[5:]
                buffer.append(value[1:] if value.startswith(" ") else value)
            continue
        if not buffer:
            continue
        data, buffer = "\n".join(buffer), []
        if data.strip() == DONE_SENTINEL:
            return
        decoded = _decode(data)
        if decoded is not None:
            yield decoded

    if buffer:
        data = "\n".join(buffer)
        if data.strip() != DONE_SENTINEL:
            decoded = _decode(data)
            if decoded is not None:
                yield decoded


def _decode(data: str) -> dict | None:
    try:
        decoded = json.loads(data)
    except json.JSONDecodeError as e:
        logger.warning(f"Skipping undecodable SSE payload: {e}")
        return None
    if not isinstance(decoded, dict):
        logger.warning(f"Skipping non-object SSE payload: {data[:80]}")
        return None
    return decoded
