"""Transports: cancellable producers of chunk records.

A transport turns one user message into an ordered stream of
:class:`~chatline.chunks.StreamChunk` objects and stops producing once
the turn's :class:`~chatline.cancellation.CancelToken` is cancelled.
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass

import httpx
from openai import AsyncOpenAI

from chatline.cancellation import CancelToken
from chatline.chunks import (
    StreamChunk,
    TextDelta,
    ToolCallComplete,
    ToolCallDelta,
    ToolCallStart,
    parse_chunk,
)
from chatline.config import Settings
from chatline.sse import iter_sse_data

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """The agent server answered with a non-success status."""

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"Agent server error ({status_code}): {body[:500]}")
        self.status_code = status_code
        self.body = body


class Transport(ABC):
    name: str = "transport"

    @abstractmethod
    def stream(
        self, text: str, token: CancelToken
    ) -> AsyncIterator[StreamChunk]:
        """Yield the chunks answering ``text`` in delivery order."""

    async def aclose(self) -> None:
        pass


class MastraTransport(Transport):
    """Streams an agent's response from an agent server over HTTP.

    The server answers ``POST /api/agents/{agent}/stream`` with an SSE
    body whose ``data:`` payloads are chunk records.

    Args:
        settings: Server URL, agent and memory settings; read from the
            environment when omitted.
        client: HTTP client to use; one is created (and owned) when
            omitted.
    """

    name = "mastra"

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or Settings.from_env()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=self.settings.timeout
        )

    def _request_body(self, text: str) -> dict:
        return {
            "messages": [{"role": "user", "content": text}],
            "memory": {
                "thread": self.settings.thread_id,
                "resource": self.settings.resource_id,
            },
        }

    async def stream(
        self, text: str, token: CancelToken
    ) -> AsyncIterator[StreamChunk]:
        url = self.settings.stream_url
        logger.info(f"Streaming from {url}")
        async with self.client.stream(
            "POST", url, json=self._request_body(text),
        ) as response:
            if not response.is_success:
                body = (await response.aread()).decode(
                    "utf-8", errors="replace"
                )
                raise TransportError(response.status_code, body)
            records = iter_sse_data(response.aiter_lines())
            try:
                async for data in records:
                    if token.cancelled:
                        logger.info("Stream cancelled, closing response")
                        return
                    yield parse_chunk(data)
            finally:
                await records.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()


@dataclass
class _PendingCall:
    id: str
    name: str = ""
    arguments: str = ""


class OpenAITransport(Transport):
    """Streams a chat completion directly from an OpenAI-compatible API.

    Completion deltas are translated into chunk records: text deltas are
    keyed by the completion id, tool call fragments become start and
    delta chunks, and ``finish_reason == "tool_calls"`` completes each
    call with its JSON-decoded arguments.  Tools are not executed, so no
    ``tool-result`` chunks are produced.

    The conversation history lives in memory for the life of the
    transport.

    Args:
        model: Model name passed to the completions API.
        client: Client to use; built from ``OPENAI_API_KEY`` when omitted.
        system_prompt: Optional system message prepended to the history.
        tools: Optional tool schemas offered to the model.
    """

    name = "openai"

    def __init__(
        self,
        model: str,
        client: AsyncOpenAI | None = None,
        system_prompt: str | None = None,
        tools: list[dict] | None = None,
        base_url: str | None = None,
    ):
        if client is None:
            client = AsyncOpenAI(
                api_key=os.getenv("OPENAI_API_KEY"),
                base_url=base_url,
                max_retries=5,
                timeout=600.0,
            )
        self.client = client
        self.model = model
        self.tools = tools
        self.history: list[dict] = []
        if system_prompt:
            self.history.append({"role": "system", "content": system_prompt})

    async def stream(
        self, text: str, token: CancelToken
    ) -> AsyncIterator[StreamChunk]:
        self.history.append({"role": "user", "content": text})
        kwargs = {}
        if self.tools:
            kwargs["tools"] = self.tools
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=list(self.history),
            stream=True,
            **kwargs,
        )

        content = ""
        pending: dict[int, _PendingCall] = {}
        try:
            async for completion in response:
                if token.cancelled:
                    logger.info("Stream cancelled, closing completion")
                    break
                if not completion.choices:
                    continue
                run_id = completion.id or ""
                choice = completion.choices[0]
                delta = choice.delta

                if delta is not None and delta.content:
                    content += delta.content
                    yield TextDelta(run_id=run_id, text=delta.content)

                for frag in (delta.tool_calls if delta is not None else None) or []:
                    for chunk in _translate_fragment(run_id, frag, pending):
                        yield chunk

                if choice.finish_reason == "tool_calls":
                    for index in sorted(pending):
                        yield _complete_call(run_id, pending[index])
                    pending.clear()
        finally:
            await response.close()
            if content:
                self.history.append({"role": "assistant", "content": content})


def _translate_fragment(run_id, frag, pending: dict[int, _PendingCall]):
    fn = frag.function
    if frag.index not in pending:
        call = _PendingCall(id=frag.id or f"{run_id}:{frag.index}")
        if fn is not None and fn.name:
            call.name = fn.name
        pending[frag.index] = call
        yield ToolCallStart(
            run_id=run_id, tool_call_id=call.id, tool_name=call.name or None,
        )
    call = pending[frag.index]
    if fn is not None and fn.arguments:
        call.arguments += fn.arguments
        yield ToolCallDelta(
            run_id=run_id, tool_call_id=call.id,
            args_text_delta=fn.arguments,
        )


def _complete_call(run_id: str, call: _PendingCall) -> ToolCallComplete:
    try:
        args = json.loads(call.arguments) if call.arguments else {}
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid JSON in arguments for {call.name}: {e}")
        args = None
    return ToolCallComplete(
        run_id=run_id, tool_call_id=call.id,
        tool_name=call.name or None, args=args,
    )
