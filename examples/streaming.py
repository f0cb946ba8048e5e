"""Streaming with in-stream tool execution, and with results supplied by hand."""

from __future__ import annotations

import argparse
import asyncio
from typing import Any

from tool_relay import (
    Client,
    ClientConfig,
    Provider,
    Schema,
    StreamEventType,
    StreamOptions,
    StreamRequest,
    ToolBuilder,
    ToolExecutionMode,
)


async def lookup_stock(arguments: dict[str, Any]) -> dict[str, Any]:
    return {"symbol": arguments["symbol"], "price": 187.2}


TOOLS, HANDLERS = (
    ToolBuilder()
    .add_tool(
        "lookup_stock",
        "Latest stock price",
        Schema.object({"symbol": Schema.string("Ticker symbol")}, required=["symbol"]),
        lookup_stock,
    )
    .build()
)


async def auto_stream(client: Client, provider: Provider, model: str) -> None:
    print("=== Automatic tool execution ===")
    response = await client.stream(
        StreamRequest(
            input="What is AAPL trading at?",
            provider=provider,
            model=model,
            tools=TOOLS,
            tool_handlers=HANDLERS,
            options=StreamOptions(include_usage=True),
        )
    )
    async with response:
        async for event in response:
            if event.type is StreamEventType.CHUNK:
                print(event.text, end="", flush=True)
            elif event.type is StreamEventType.TOOL_CALL_REQUEST:
                print(f"\n-> {event.tool_call.name}({event.tool_call.arguments})")
            elif event.type is StreamEventType.USAGE:
                print(f"\n📊 Usage: {event.usage}")
            elif event.type is StreamEventType.ERROR:
                print(f"\n❌ Error: {event.error}")


async def paused_stream(client: Client, provider: Provider, model: str) -> None:
    print("\n=== Manually submitted results ===")
    response = await client.stream(
        StreamRequest(
            input="What is MSFT trading at?",
            provider=provider,
            model=model,
            tools=TOOLS,
            options=StreamOptions(tool_execution_mode=ToolExecutionMode.PAUSE),
        )
    )
    async with response:
        async for event in response:
            if event.type is StreamEventType.CHUNK:
                print(event.text, end="", flush=True)
            elif event.type is StreamEventType.TOOL_CALL_REQUEST:
                # e.g. ask a human, or call a remote service
                response.submit_tool_result(event.tool_call.id, {"symbol": "MSFT", "price": 402.5})
    print()


async def main(provider: Provider, model: str) -> None:
    async with Client(ClientConfig(detect_env=True)) as client:
        await auto_stream(client, provider, model)
        await paused_stream(client, provider, model)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--provider", choices=[p.value for p in Provider], default=Provider.GOOGLE.value)
    parser.add_argument("--model", default="gemini-2.5-flash")
    args = parser.parse_args()

    asyncio.run(main(Provider(args.provider), args.model))
