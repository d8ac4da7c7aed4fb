"""Tests for the shell tool."""

import sys

import pytest

from pincer.security.exceptions import PathNotAllowedError, SandboxError
from pincer.security.policy import Policy, Result
from pincer.security.sandbox import ProcessSandbox
from pincer.tools.base import InvalidToolInputError, ToolExecutionError
from pincer.tools.builtin.shell import SHELL, ShellTool, format_result


class TestFormatResult:
    """Tests for format_result."""

    def test_stdout_only(self):
        """Test a clean run is just its stdout."""
        assert format_result(Result(stdout="hi\n")) == "hi\n"

    def test_all_sections(self):
        """Test stderr, exit code and error are appended in order."""
        result = Result(stdout="out", stderr="err", exit_code=-1, error="tool execution timed out after 1s")

        assert format_result(result) == (
            "out\nSTDERR:\nerr\n(exit code: -1)\nError: tool execution timed out after 1s"
        )


class TestShellTool:
    """Tests for ShellTool."""

    def test_definition(self):
        """Test name, danger flag and schema."""
        tool = ShellTool()

        assert tool.name == "shell"
        assert tool.is_dangerous is True
        assert tool.definition().input_schema["required"] == ["command"]

    @pytest.mark.asyncio
    async def test_builds_shell_command(self, fake_sandbox):
        """Test the command runs through /bin/sh -c with the given policy."""
        fake_sandbox.result = Result(stdout="file.txt\n")
        policy = Policy(timeout=5)

        output = await ShellTool().execute({"command": "ls", "work_dir": "/srv"}, fake_sandbox, policy)

        assert output == "file.txt\n"
        command = fake_sandbox.commands[0]
        assert command.program == SHELL
        assert command.args == ["-c", "ls"]
        assert command.work_dir == "/srv"
        assert command.name == "shell"
        assert fake_sandbox.policies[0] is policy

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_output(self, fake_sandbox):
        """Test a failing command is reported in the text, not raised."""
        fake_sandbox.result = Result(stderr="no such file\n", exit_code=2)

        output = await ShellTool().execute({"command": "cat missing"}, fake_sandbox, Policy())

        assert output == "\nSTDERR:\nno such file\n\n(exit code: 2)"

    @pytest.mark.asyncio
    async def test_missing_command(self, fake_sandbox):
        """Test input without a command never reaches the sandbox."""
        with pytest.raises(InvalidToolInputError):
            await ShellTool().execute("{}", fake_sandbox, Policy())

        assert fake_sandbox.commands == []

    @pytest.mark.asyncio
    async def test_sandbox_error_wrapped(self, fake_sandbox):
        """Test a sandbox that cannot run the command raises ToolExecutionError."""
        fake_sandbox.error = SandboxError("sandbox: no container runtime found")

        with pytest.raises(ToolExecutionError, match="^shell: execution failed"):
            await ShellTool().execute({"command": "ls"}, fake_sandbox, Policy())

    @pytest.mark.asyncio
    async def test_policy_violation_propagates(self, fake_sandbox):
        """Test policy violations are not wrapped."""
        fake_sandbox.error = PathNotAllowedError("sandbox: path '/etc' is not under any allowed directory", "/etc")

        with pytest.raises(PathNotAllowedError):
            await ShellTool().execute({"command": "ls", "work_dir": "/etc"}, fake_sandbox, Policy())

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="requires /bin/sh")
    async def test_real_process(self, temp_dir):
        """Test a real run through the process sandbox."""
        policy = Policy(allowed_paths=(str(temp_dir),))

        output = await ShellTool().execute(
            {"command": "echo hello; echo warn >&2; exit 1", "work_dir": str(temp_dir)},
            ProcessSandbox(),
            policy,
        )

        assert output == "hello\n\nSTDERR:\nwarn\n\n(exit code: 1)"
