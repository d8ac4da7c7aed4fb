"""
pincer exec - Run a program through the configured sandbox.

Usage:
    pincer exec -- ls -la
    pincer exec --work-dir ./project -- make test
    pincer exec --timeout 5 -- sleep 10
"""

import asyncio
import dataclasses
from typing import Annotated

import typer

from pincer.cli.common import load_cli_config
from pincer.cli.output import console, print_error, print_raw
from pincer.security import Command, Policy, PolicyViolationError, SandboxError, create_sandbox


def exec_command(
    ctx: typer.Context,
    program: Annotated[
        str,
        typer.Argument(help="Program to run."),
    ],
    args: Annotated[
        list[str] | None,
        typer.Argument(help="Arguments passed to the program. Put them after --."),
    ] = None,
    work_dir: Annotated[
        str | None,
        typer.Option(
            "--work-dir",
            "-w",
            help="Working directory; must be under an allowed path.",
        ),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option(
            "--timeout",
            "-t",
            help="Override the policy timeout in seconds.",
        ),
    ] = None,
    stdin: Annotated[
        str | None,
        typer.Option(
            "--stdin",
            help="Text written to the program's standard input.",
        ),
    ] = None,
) -> None:
    """Run a program under the configured sandbox and policy."""
    config = load_cli_config(ctx)
    policy = Policy.from_config(config.policy)
    if timeout is not None:
        policy = dataclasses.replace(policy, timeout=timeout)

    command = Command(
        name="exec",
        program=program,
        args=list(args or []),
        stdin=stdin or "",
        work_dir=work_dir or "",
    )

    try:
        sandbox = create_sandbox(config.sandbox)
        result = asyncio.run(sandbox.exec(command, policy))
    except PolicyViolationError as e:
        print_error(f"Refused by policy: {e}")
        raise typer.Exit(1)
    except SandboxError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if result.stdout:
        print_raw(result.stdout)
    if result.stderr:
        console.print("\n[bold]STDERR:[/bold]")
        print_raw(result.stderr)

    console.print(f"\n[dim]exit code: {result.exit_code} | {result.duration:.2f}s[/dim]")
    if result.error:
        print_error(result.error)

    if result.exit_code != 0:
        raise typer.Exit(result.exit_code if result.exit_code > 0 else 1)
