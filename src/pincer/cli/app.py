"""
Main Typer application for the pincer CLI.

This module defines the root CLI application and registers all commands.
"""

import logging
from typing import Annotated

import typer

from pincer import __version__
from pincer.cli.commands import chat, execute, secrets, tools
from pincer.cli.common import configure_logging
from pincer.cli.output import print_info

# Create the main Typer app
app = typer.Typer(
    name="pincer",
    help="Vendor-neutral LLM agent runtime with sandboxed tools.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        print_info(f"pincer version [green]{__version__}[/green]")
        raise typer.Exit()


# noinspection PyUnusedLocal
@app.callback()
def main_callback(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
) -> None:
    """
    [bold blue]pincer[/bold blue] - LLM agent runtime

    Streams replies from Anthropic, OpenAI, Gemini and OpenAI-compatible
    servers through one event protocol, and runs tools inside a
    policy-bound sandbox.
    """
    ctx.obj = {"verbose": verbose}
    configure_logging(logging.DEBUG if verbose else logging.WARNING)


app.command("chat")(chat.chat_command)
app.command(
    "exec",
    context_settings={"allow_interspersed_args": False},
)(execute.exec_command)
app.add_typer(tools.app, name="tools")
app.add_typer(secrets.app, name="secrets")


if __name__ == "__main__":
    app()
