"""
Pytest configuration and fixtures for pincer tests.
"""

import json
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import httpx
import pytest
from typer.testing import CliRunner

from pincer.security.policy import Command, Policy, Result


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_pincer_home(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Point PINCER_HOME at a fresh directory and clear provider keys."""
    pincer_home = temp_dir / ".pincer"
    pincer_home.mkdir()
    monkeypatch.setenv("PINCER_HOME", str(pincer_home))
    for var in ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY", "OLLAMA_BASE_URL"):
        monkeypatch.delenv(var, raising=False)
    yield pincer_home


@pytest.fixture
def mock_project_dir(temp_dir: Path) -> Generator[Path, None, None]:
    """Provide a mock project directory with .pincer/ config dir."""
    project_dir = temp_dir / "test-project"
    project_dir.mkdir()
    (project_dir / ".pincer").mkdir()
    yield project_dir


def sse_body(*payloads: Any) -> bytes:
    """Encode payloads as an SSE body; strings are sent verbatim as data."""
    lines = []
    for payload in payloads:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        lines.append(f"data: {data}\n\n")
    return "".join(lines).encode()


class RecordingTransport:
    """Builds an ``httpx.MockTransport`` that answers every request the same way."""

    def __init__(self, status_code: int = 200, content: bytes = b"", headers: dict[str, str] | None = None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {"content-type": "text/event-stream"}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, content=self.content, headers=self.headers)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def last_json(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def transport_factory() -> Callable[..., RecordingTransport]:
    """Factory for mock HTTP transports that record requests."""
    return RecordingTransport


class FakeSandbox:
    """Sandbox double that records commands and returns a canned result."""

    def __init__(self, result: Result | None = None, error: Exception | None = None):
        self.result = result or Result()
        self.error = error
        self.commands: list[Command] = []
        self.policies: list[Policy] = []

    async def exec(self, command: Command, policy: Policy) -> Result:
        self.commands.append(command)
        self.policies.append(policy)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def fake_sandbox() -> FakeSandbox:
    """Provide a recording sandbox double."""
    return FakeSandbox()


@pytest.fixture
def sse() -> Callable[..., bytes]:
    """Encode payloads as an SSE response body."""
    return sse_body
