"""Proactive notification tool.

Lets the agent message the user right away, or schedule a full agent turn
that runs after a delay and delivers its reply to the same session.
"""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Optional

from pincer.security.policy import Policy
from pincer.security.sandbox import Sandbox
from pincer.tools.base import BaseTool, InvalidToolInputError, ToolContext, ToolExecutionError
from pincer.tools.models import NotifyInput, ToolParameter

logger = logging.getLogger(__name__)

# (session_id, content)
Deliver = Callable[[str, str], Awaitable[None]]
# (session_id, prompt)
RunAndDeliver = Callable[[str, str], Awaitable[None]]

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_COMPONENT = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """Parse a duration such as ``5m``, ``1h30m`` or ``1.5s``.

    Args:
        text: Sequence of decimal numbers, each with a unit suffix
            (ns, us, ms, s, m, h), optionally signed.

    Returns:
        The duration in seconds.

    Raises:
        ValueError: If the text is not a valid duration.
    """
    original = text
    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    if text == "0":
        return 0.0
    if not text:
        raise ValueError(f"invalid duration {original!r}")

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration {original!r}")
        total += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()
    return sign * total


def format_duration(seconds: float) -> str:
    """Render seconds the way durations are written, e.g. ``1h30m0s``."""
    if seconds < 1:
        return f"{seconds * 1000:g}ms"
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    out = ""
    if hours:
        out += f"{int(hours)}h"
    if hours or minutes:
        out += f"{int(minutes)}m"
    return out + f"{round(secs, 9):g}s"


class NotifyTool(BaseTool[NotifyInput]):
    """Message the user now, or run a delayed agent turn for the session."""

    input_model = NotifyInput

    def __init__(
        self,
        send: Optional[Deliver] = None,
        run_and_deliver: Optional[RunAndDeliver] = None,
    ):
        """Initialize notify tool.

        Args:
            send: Delivers text to a session immediately
            run_and_deliver: Runs an agent turn for a prompt and delivers its reply
        """
        self._send = send
        self._run_and_deliver = run_and_deliver
        self._scheduled: set[asyncio.Task[None]] = set()
        super().__init__()

    @property
    def name(self) -> str:
        """Tool name."""
        return "notify"

    @property
    def description(self) -> str:
        """Tool description."""
        return (
            "Proactively message the user. Actions: schedule (run a full agent turn "
            "after a delay and deliver the result), send (immediately send a message "
            "to the current session)."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        """Tool parameters."""
        return [
            ToolParameter(
                name="action",
                type="string",
                description=(
                    "schedule: start a delayed agent turn that delivers its response to the user. "
                    "send: immediately send a text message to the current session."
                ),
                required=True,
                enum=["schedule", "send"],
            ),
            ToolParameter(
                name="delay",
                type="string",
                description=(
                    "Duration to wait before running the scheduled turn "
                    "(e.g. '5m', '1h30m'). Required for schedule."
                ),
                required=False,
            ),
            ToolParameter(
                name="message",
                type="string",
                description=(
                    "For schedule: the prompt used as the user message when the timer fires. "
                    "For send: the text to deliver immediately."
                ),
                required=True,
            ),
        ]

    @property
    def pending(self) -> int:
        """Number of scheduled turns that have not fired yet."""
        return sum(1 for task in self._scheduled if not task.done())

    async def run(self, params: NotifyInput, sandbox: Sandbox, policy: Policy, context: ToolContext) -> str:
        """Send or schedule a message for ``context.session_id``.

        Raises:
            InvalidToolInputError: If there is no session, or the message or delay is unusable
            ToolExecutionError: If the needed callback is missing or delivery fails
        """
        if not context.session_id:
            raise InvalidToolInputError("notify: no session in context")
        if not params.message:
            raise InvalidToolInputError(f"notify: message is required for {params.action}")

        if params.action == "send":
            if self._send is None:
                raise ToolExecutionError("notify: sending is not configured")
            try:
                await self._send(context.session_id, params.message)
            except Exception as e:
                raise ToolExecutionError(f"notify: send failed: {e}") from e
            return "message sent"

        if self._run_and_deliver is None:
            raise ToolExecutionError("notify: scheduling is not configured")
        if not params.delay:
            raise InvalidToolInputError("notify: delay is required for schedule")
        try:
            delay = parse_duration(params.delay)
        except ValueError as e:
            raise InvalidToolInputError(f"notify: {e}") from e
        if delay <= 0:
            raise InvalidToolInputError("notify: delay must be positive")

        task = asyncio.create_task(self._fire(delay, context.session_id, params.message))
        self._scheduled.add(task)
        task.add_done_callback(self._scheduled.discard)

        logger.info(f"Scheduled turn for session {context.session_id} in {format_duration(delay)}")
        return f"scheduled: will run in {format_duration(delay)}"

    async def _fire(self, delay: float, session_id: str, prompt: str) -> None:
        await asyncio.sleep(delay)
        assert self._run_and_deliver is not None
        try:
            await self._run_and_deliver(session_id, prompt)
        except Exception:
            logger.exception(f"Scheduled turn for session {session_id} failed")

    async def aclose(self) -> None:
        """Cancel every scheduled turn that has not fired yet."""
        tasks = list(self._scheduled)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
