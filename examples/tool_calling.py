from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Any

from tool_relay import (
    Client,
    ClientConfig,
    Provider,
    Schema,
    TextMode,
    TextRequest,
    ToolBuilder,
)

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

WEATHER_PARAMS = Schema.object(
    {
        "location": Schema.string("City and state, e.g. San Francisco, CA"),
        "unit": Schema.string("Temperature unit", enum=["celsius", "fahrenheit"]),
    },
    required=["location"],
)


async def get_weather(arguments: dict[str, Any]) -> dict[str, Any]:
    """Stub implementation of get_weather."""
    # imagine we call a real weather API here
    return {"location": arguments["location"], "forecast": "15 °C, mostly cloudy"}


async def tool_roundtrip(provider: Provider, model: str) -> None:
    """
    Let the model call get_weather until it can answer.

    The client runs the whole loop: request, tool execution, result
    injection and the final completion.
    """
    tools, handlers = (
        ToolBuilder()
        .add_tool("get_weather", "Get the current weather in a given location", WEATHER_PARAMS, get_weather)
        .build()
    )

    async with Client(ClientConfig(detect_env=True)) as client:
        response = await client.text(
            TextRequest(
                input="What's the weather in San Francisco?",
                provider=provider,
                model=model,
                mode=TextMode.TOOL_CALLING,
                tools=tools,
                tool_handlers=handlers,
            )
        )
    logger.info("%s says: %s", provider.value.capitalize(), response.text)
    logger.info("Usage: %s", response.usage)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--provider",
        choices=[p.value for p in Provider],
        default=Provider.OPENAI.value,
    )
    parser.add_argument(
        "--model",
        default="gpt-4.1-nano",  # "gemini-2.5-flash"
    )
    args = parser.parse_args()

    asyncio.run(tool_roundtrip(Provider(args.provider), args.model))
