"""
pincer secrets - Manage encrypted API keys and other secrets.

Usage:
    pincer secrets set anthropic
    pincer secrets list
    pincer secrets delete anthropic
"""

import os
from typing import Annotated

import typer
from rich.table import Table

from pincer.cli.output import console, print_error, print_success
from pincer.credentials import PROVIDER_ENV_VARS, CredentialStore, SecretsError

app = typer.Typer(
    name="secrets",
    help="Manage encrypted API keys and other secrets.",
)


@app.command("set")
def set_secret(
    name: Annotated[
        str,
        typer.Argument(help="Secret name; use the provider name for API keys (e.g., 'anthropic')."),
    ],
    value: Annotated[
        str | None,
        typer.Option(
            "--value",
            help="Secret value (will prompt if not provided).",
        ),
    ] = None,
) -> None:
    """Store a secret, replacing any previous value."""
    store = CredentialStore()

    if value is None:
        value = typer.prompt(f"Enter value for {name}", hide_input=True, default="", show_default=False)
    if not value:
        print_error("No value provided.")
        raise typer.Exit(1)

    try:
        store.set(name, value)
    except SecretsError as e:
        print_error(f"Failed to store secret: {e}")
        raise typer.Exit(1)

    print_success(f"Secret '{name}' stored.")


@app.command("list")
def list_secrets() -> None:
    """List stored secret names. Values are never shown."""
    names = CredentialStore().list()

    if not names:
        console.print("[dim]No secrets stored.[/dim]")
        console.print("[dim]Use 'pincer secrets set <name>' to add one.[/dim]")
        return

    table = Table(title="Stored Secrets")
    table.add_column("Name", style="cyan")
    table.add_column("Environment Variable", style="green")
    table.add_column("Status")

    for name in names:
        env_var = PROVIDER_ENV_VARS.get(name.lower(), "")
        status = "[yellow]env also set[/yellow]" if env_var and os.environ.get(env_var) else "[green]stored[/green]"
        table.add_row(name, env_var or "-", status)

    console.print(table)


@app.command("delete")
def delete_secret(
    name: Annotated[
        str,
        typer.Argument(help="Secret name to delete."),
    ],
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation.",
        ),
    ] = False,
) -> None:
    """Delete a stored secret."""
    if not yes and not typer.confirm(f"Delete secret '{name}'?"):
        raise typer.Exit(0)

    try:
        deleted = CredentialStore().delete(name)
    except SecretsError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if not deleted:
        print_error(f"Secret '{name}' not found.")
        raise typer.Exit(1)
    print_success(f"Secret '{name}' deleted.")
