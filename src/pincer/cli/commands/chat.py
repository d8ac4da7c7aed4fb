"""
pincer chat - Send one prompt and stream the model's reply.

Usage:
    pincer chat "Your prompt here"
    pincer chat "Prompt" --model openai/gpt-4o
    pincer chat "Prompt" --no-stream
    pincer chat "List the files here" --tools

Tool calls are printed, not executed.
"""

import asyncio
import json
from typing import Annotated

import typer

from pincer.cli.common import build_registry, load_cli_config, load_soul
from pincer.cli.output import console, print_error, print_raw
from pincer.config import Config
from pincer.providers import (
    AuthenticationError,
    ChatMessage,
    ChatRequest,
    DoneEvent,
    ErrorEvent,
    ProviderError,
    ProviderManager,
    StreamError,
    TokenEvent,
    ToolCallEvent,
    Usage,
)


async def _chat(
    config: Config,
    prompt: str,
    model: str | None,
    stream: bool,
    system: str | None,
    max_tokens: int,
    temperature: float | None,
    tools: bool,
) -> Usage:
    """Run one model turn and print its events as they arrive."""
    request = ChatRequest(
        messages=[ChatMessage.user(prompt)],
        system=system if system is not None else load_soul(config).render(),
        max_tokens=max_tokens,
        temperature=temperature,
        tools=build_registry(config).definitions() if tools else [],
        stream=stream,
    )

    manager = ProviderManager(config.providers)
    try:
        chat_stream = await manager.chat(request, model=model)
        async with chat_stream:
            async for event in chat_stream:
                if isinstance(event, TokenEvent):
                    print_raw(event.text)
                elif isinstance(event, ToolCallEvent):
                    call = event.tool_call
                    console.print(
                        f"\n[magenta]→ tool call[/magenta] [bold]{call.name}[/bold] "
                        f"[dim]({call.id})[/dim] {json.dumps(call.input)}",
                        highlight=False,
                    )
                elif isinstance(event, DoneEvent):
                    return event.usage
                elif isinstance(event, ErrorEvent):
                    raise event.error
    finally:
        await manager.aclose()

    return Usage()


def chat_command(
    ctx: typer.Context,
    prompt: Annotated[
        str,
        typer.Argument(help="The prompt to send."),
    ],
    model: Annotated[
        str | None,
        typer.Option(
            "--model",
            "-m",
            help="provider/model or an alias. Defaults to providers.default.",
        ),
    ] = None,
    stream: Annotated[
        bool,
        typer.Option(
            "--stream/--no-stream",
            help="Stream the reply or wait for the whole response.",
        ),
    ] = True,
    system: Annotated[
        str | None,
        typer.Option(
            "--system",
            "-s",
            help="System prompt. Defaults to the agent persona.",
        ),
    ] = None,
    max_tokens: Annotated[
        int,
        typer.Option(
            "--max-tokens",
            help="Maximum tokens in the reply (0 uses the provider default).",
        ),
    ] = 0,
    temperature: Annotated[
        float | None,
        typer.Option(
            "--temperature",
            help="Sampling temperature.",
        ),
    ] = None,
    tools: Annotated[
        bool,
        typer.Option(
            "--tools/--no-tools",
            help="Advertise the built-in tools to the model.",
        ),
    ] = False,
) -> None:
    """Send one prompt to a model and print the reply."""
    config = load_cli_config(ctx)

    try:
        usage = asyncio.run(
            _chat(config, prompt, model, stream, system, max_tokens, temperature, tools)
        )
    except AuthenticationError as e:
        print_error(f"Authentication failed: {e}")
        console.print("[dim]Check your API key configuration:[/dim]")
        console.print("[dim]  - Environment variable (e.g., ANTHROPIC_API_KEY)[/dim]")
        console.print("[dim]  - pincer secrets set <provider>[/dim]")
        raise typer.Exit(3)
    except StreamError as e:
        print_error(f"Stream failed: {e}")
        raise typer.Exit(4)
    except ProviderError as e:
        print_error(f"Provider error: {e}")
        raise typer.Exit(4)
    except KeyboardInterrupt:
        print_error("Interrupted")
        raise typer.Exit(130)

    console.print(
        f"\n\n[dim]Tokens: {usage.input_tokens} in, {usage.output_tokens} out[/dim]"
    )
