from __future__ import annotations

import argparse
import asyncio
import logging
import signal

from llm_toolloop import (
    AbortController,
    ChatSession,
    ClientConfig,
    ModelClient,
    ModelSettings,
    Provider,
    RunOptions,
    ToolContext,
    ToolRegistry,
)

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

registry = ToolRegistry()


@registry.tool(
    parameters={
        "type": "object",
        "properties": {
            "location": {
                "type": "string",
                "description": "City and state, e.g. San Francisco, CA",
            },
            "unit": {"type": "string", "enum": ["celsius", "fahrenheit"]},
        },
        "required": ["location"],
    }
)
async def get_weather(args: dict, ctx: ToolContext) -> dict:
    """Get the current weather in a given location"""
    # imagine we call a real weather API here
    await asyncio.sleep(0.1)
    return {"location": args.get("location"), "forecast": "15 °C, mostly cloudy"}


async def tool_loop(provider: Provider, model: str) -> None:
    """
    Run one chat turn; the client executes get_weather calls until the model
    answers in plain text. Ctrl+C aborts the run and rolls back the session.
    """
    config = ClientConfig(
        models={
            "demo": ModelSettings(
                name="demo", provider=provider, model=model, tools=["get_weather"]
            )
        }
    )
    session = ChatSession(session_id="example")
    session.add_system("You are a concise assistant.")
    session.add_user("What's the weather in San Francisco?")

    controller = AbortController()
    asyncio.get_running_loop().add_signal_handler(signal.SIGINT, controller.abort, "interrupted")

    options = RunOptions(
        signal=controller.signal,
        on_token=lambda token: print(token, end="", flush=True),
        on_tool_call=lambda event: logger.info("-> %s(%s)", event.tool, event.args),
        on_tool_result=lambda event: logger.info("<- %s: %s", event.tool, event.result),
    )

    async with ModelClient(config, registry) as client:
        answer = await client.run("demo", session, options)
    print()
    logger.info("%s says: %s", provider.value.capitalize(), answer)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--provider",
        choices=[p.value for p in Provider],
        default=Provider.OPENAI.value,
    )
    parser.add_argument(
        "--model",
        default="gpt-4.1-nano-2025-04-14",  # "deepseek-chat", "gemini-2.0-flash-lite", "claude-3-5-haiku-20241022"
    )
    args = parser.parse_args()

    asyncio.run(tool_loop(Provider(args.provider), args.model))
