"""
Sandbox executor for pincer.

Runs a ``Command`` under a ``Policy``: bounded wall time, bounded captured
output, and a work directory confined to the allowed roots. The process runs
in its own session so a timeout or cancellation kills its whole tree.
"""

import asyncio
import logging
import os
import signal
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol

from pincer.security.exceptions import SandboxError
from pincer.security.paths import check_allowed
from pincer.security.policy import Command, Policy, Result, truncate_output

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024


class Sandbox(Protocol):
    """Anything that can execute a command under a policy."""

    async def exec(self, command: Command, policy: Policy) -> Result:
        """
        Execute a command.

        Raises:
            SandboxError: If the command cannot be run at all.
            PathNotAllowedError: If the work directory violates the policy.
        """
        ...


class _Capture:
    """Bounded output buffer that keeps draining its pipe past the cap."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.data = bytearray()
        self.truncated = False

    async def drain(self, stream: asyncio.StreamReader | None) -> None:
        if stream is None:
            return
        while chunk := await stream.read(READ_CHUNK_SIZE):
            room = self.limit - len(self.data)
            if room > 0:
                self.data.extend(chunk[:room])
            if len(chunk) > max(room, 0):
                self.truncated = True

    def text(self) -> str:
        return truncate_output(bytes(self.data), self.limit, self.truncated)


async def _feed_stdin(stream: asyncio.StreamWriter | None, data: str) -> None:
    if stream is None:
        return
    try:
        if data:
            stream.write(data.encode())
            await stream.drain()
    except (BrokenPipeError, ConnectionResetError):
        # The program exited without reading all of its input.
        pass
    finally:
        stream.close()


def _kill_process_group(proc: asyncio.subprocess.Process) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    except PermissionError:
        proc.kill()


def _format_seconds(seconds: float) -> str:
    return f"{seconds:g}s"


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


async def run_process(
    argv: Sequence[str],
    *,
    stdin: str = "",
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    timeout: float,
    max_output_bytes: int,
    on_kill: Callable[[], Awaitable[None]] | None = None,
) -> Result:
    """
    Run a program to completion with a deadline and capped output.

    Args:
        argv: Program and arguments.
        stdin: Text written to the program's standard input.
        cwd: Working directory.
        env: Complete environment; inherited when None.
        timeout: Wall-clock limit in seconds.
        max_output_bytes: Cap applied to stdout and stderr independently.
        on_kill: Extra cleanup run after the process group is killed.

    Returns:
        The execution result. Failure to start, a timeout and death by
        signal are reported through ``exit_code=-1`` and ``error``.
    """
    start = time.monotonic()
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=env,
            start_new_session=True,
        )
    except OSError as e:
        logger.debug(f"Failed to start {argv[0]!r}: {e}")
        return Result(exit_code=-1, duration=time.monotonic() - start, error=str(e))

    stdout = _Capture(max_output_bytes)
    stderr = _Capture(max_output_bytes)

    async def communicate() -> None:
        await asyncio.gather(
            _feed_stdin(proc.stdin, stdin),
            stdout.drain(proc.stdout),
            stderr.drain(proc.stderr),
        )
        await proc.wait()

    async def kill() -> None:
        _kill_process_group(proc)
        if on_kill is not None:
            await on_kill()
        await proc.wait()

    timed_out = False
    try:
        await asyncio.wait_for(communicate(), timeout)
    except asyncio.TimeoutError:
        timed_out = True
        logger.warning(f"{argv[0]!r} timed out after {_format_seconds(timeout)}; killing process group")
        await kill()
    except asyncio.CancelledError:
        logger.debug(f"{argv[0]!r} cancelled; killing process group")
        await asyncio.shield(kill())
        raise

    result = Result(
        stdout=stdout.text(),
        stderr=stderr.text(),
        exit_code=proc.returncode if proc.returncode is not None else -1,
        duration=time.monotonic() - start,
    )

    if timed_out:
        result.exit_code = -1
        result.error = f"tool execution timed out after {_format_seconds(timeout)}"
    elif result.exit_code < 0:
        result.error = f"process killed by signal {_signal_name(-result.exit_code)}"
        result.exit_code = -1

    return result


class ProcessSandbox:
    """
    Runs commands directly on the host as child processes.

    Provides:
    - Work directory confinement to ``policy.allowed_paths``
    - Wall-clock timeout that kills the whole process tree
    - Independent stdout/stderr caps
    """

    def __init__(self, default_work_dir: str | None = None) -> None:
        """
        Initialize the sandbox.

        Args:
            default_work_dir: Work directory for commands that do not set one.
        """
        self.default_work_dir = default_work_dir

    async def exec(self, command: Command, policy: Policy) -> Result:
        if not command.program:
            raise SandboxError("sandbox: empty program")

        work_dir = command.work_dir or self.default_work_dir
        if work_dir:
            work_dir = check_allowed(work_dir, policy.allowed_paths)

        logger.debug(f"Executing {command.name or command.program!r} in {work_dir or os.getcwd()}")
        return await run_process(
            [command.program, *command.args],
            stdin=command.stdin,
            cwd=work_dir or None,
            env=command.env,
            timeout=policy.effective_timeout,
            max_output_bytes=policy.effective_max_output_bytes,
        )
