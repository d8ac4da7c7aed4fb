"""
pincer tools - Inspect the tools available to the agent.

Usage:
    pincer tools list
    pincer tools info <tool-name>
"""

import json
from typing import Annotated

import typer
from rich.table import Table

from pincer.cli.common import build_registry, load_cli_config
from pincer.cli.output import console, print_error
from pincer.tools import ToolNotFoundError

app = typer.Typer(
    name="tools",
    help="Inspect the tools available to the agent.",
)

DESCRIPTION_WIDTH = 80


def _is_dangerous(tool: object) -> bool:
    return bool(getattr(tool, "is_dangerous", False))


@app.command("list")
def list_tools(ctx: typer.Context) -> None:
    """List all registered tools."""
    config = load_cli_config(ctx)
    registry = build_registry(config)

    if not len(registry):
        console.print("[yellow]No tools registered.[/yellow]")
        return

    table = Table(title="Available Tools")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Type", style="magenta")
    table.add_column("Description")

    for definition in registry.definitions():
        tool = registry.get(definition.name)
        tool_type = "⚠️  Dangerous" if _is_dangerous(tool) else "✓ Safe"
        desc = definition.description
        if len(desc) > DESCRIPTION_WIDTH:
            desc = desc[:DESCRIPTION_WIDTH] + "..."
        table.add_row(definition.name, tool_type, desc)

    console.print(table)
    console.print(f"\n[dim]Total: {len(registry)} tool(s)[/dim]")


@app.command("info")
def tool_info(
    ctx: typer.Context,
    tool_name: Annotated[
        str,
        typer.Argument(help="Tool name to get info about"),
    ],
) -> None:
    """Show the description and input schema of a tool."""
    config = load_cli_config(ctx)
    registry = build_registry(config)

    try:
        tool = registry.get(tool_name)
    except ToolNotFoundError:
        print_error(f"Tool not found: {tool_name}")
        console.print(f"\n[dim]Available tools: {', '.join(registry.names())}[/dim]")
        raise typer.Exit(1)

    definition = tool.definition()
    console.print(f"\n[bold cyan]{definition.name}[/bold cyan]")
    console.print(f"Type: {'⚠️  Dangerous' if _is_dangerous(tool) else '✓ Safe'}")
    console.print(f"\n[bold]Description:[/bold]\n{definition.description}")
    console.print("\n[bold]Input Schema:[/bold]")
    console.print_json(json.dumps(definition.input_schema))
