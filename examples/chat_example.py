"""Terminal chat client for a streaming agent.

Demonstrates:
- Choosing a transport (an agent server over HTTP, or OpenAI directly)
- Subscribing to transcript snapshots to print text and tool calls live
- Aborting a running turn with Ctrl-C

Usage:
    CHATLINE_API_URL=http://localhost:4111 python examples/chat_example.py --agent weather-agent
    uv run --env-file=.env examples/chat_example.py --transport openai --model gpt-4o-mini --trace
"""

import argparse
import asyncio
import logging
import signal

from chatline.config import Settings
from chatline.controller import TurnController
from chatline.events import SnapshotEvent, TurnOutcome
from chatline.render import format_tool_call
from chatline.transcript import AssistantRun, ToolCall, ToolCallPhase
from chatline.transport import MastraTransport, OpenAITransport, Transport


def setup_tracing(service_name: str):
    from opentelemetry import trace
    from opentelemetry.sdk.resources import SERVICE_NAME, Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import (
        SimpleSpanProcessor, ConsoleSpanExporter,
    )
    from chatline.instrumentation import instrument

    provider = TracerProvider(
        resource=Resource({SERVICE_NAME: service_name})
    )
    provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)
    instrument()


def make_transport(args) -> Transport:
    if args.transport == "openai":
        return OpenAITransport(model=args.model, base_url=args.url)
    overrides = {}
    if args.url:
        overrides["api_url"] = args.url
    if args.agent:
        overrides["agent_name"] = args.agent
    return MastraTransport(Settings.from_env(**overrides))


class LivePrinter:
    """Prints only what changed since the previous snapshot."""

    def __init__(self):
        self.printed: dict[tuple[str, str], int] = {}
        self.phases: dict[tuple[str, str], str] = {}

    def __call__(self, event: SnapshotEvent) -> None:
        entry = event.transcript[-1] if event.chunk is not None else None
        if isinstance(entry, AssistantRun):
            seen = self.printed.get(entry.key)
            if seen is None:
                print("\nAssistant: ", end="")
                seen = 0
            print(entry.content[seen:], end="", flush=True)
            self.printed[entry.key] = len(entry.content)
        for item in event.transcript:
            if isinstance(item, ToolCall) and self.phases.get(item.key) != item.phase.value:
                self.phases[item.key] = item.phase.value
                if item.phase is not ToolCallPhase.STREAMING:
                    print(f"\n{format_tool_call(item)}", flush=True)


async def main():
    parser = argparse.ArgumentParser(description="Streaming chat client")
    parser.add_argument("--transport", choices=["mastra", "openai"], default="mastra")
    parser.add_argument("--agent", default=None)
    parser.add_argument("--model", default="gpt-4o-mini")
    parser.add_argument("--url", default=None)
    parser.add_argument("--trace", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s:%(name)s:%(levelname)s:%(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )
    if args.trace:
        setup_tracing("chatline")

    transport = make_transport(args)
    controller = TurnController(transport)
    controller.subscribe(LivePrinter())
    loop = asyncio.get_running_loop()

    print("Chat (Ctrl-C stops a response, Ctrl-D quits)\n")

    try:
        while True:
            try:
                user_input = input("You: ")
            except (KeyboardInterrupt, EOFError):
                print("\nGoodbye!")
                break

            loop.add_signal_handler(signal.SIGINT, controller.abort)
            try:
                result = await controller.submit(user_input)
            finally:
                loop.remove_signal_handler(signal.SIGINT)

            if result is None:
                continue
            if result.outcome is TurnOutcome.CANCELLED:
                print("\n[stopped]")
            elif result.outcome is TurnOutcome.FAILED:
                print(f"\n[error] {result.error}")
            print()
    finally:
        await transport.aclose()


if __name__ == "__main__":
    asyncio.run(main())
