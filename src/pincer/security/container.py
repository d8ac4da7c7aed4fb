"""
Container sandbox for pincer.

Runs each command in a fresh, read-only, resource-limited container through
docker, podman or nerdctl.
"""

import dataclasses
import logging
import shutil
import uuid
from typing import TYPE_CHECKING

from pincer.security.exceptions import SandboxError
from pincer.security.paths import check_allowed, resolve_path
from pincer.security.policy import Command, NetworkAccess, Policy, Result
from pincer.security.sandbox import run_process

if TYPE_CHECKING:
    from pincer.config.schema import ContainerConfig

logger = logging.getLogger(__name__)

RUNTIME_CANDIDATES = ("docker", "podman", "nerdctl")
DEFAULT_IMAGE = "alpine:latest"
CONTAINER_WORKDIR = "/workspace"

# Upper bound for the out-of-band `<runtime> kill` issued on timeout.
KILL_TIMEOUT = 10.0


def detect_runtime() -> str | None:
    """Return the first container runtime found on PATH."""
    for runtime in RUNTIME_CANDIDATES:
        if shutil.which(runtime):
            return runtime
    return None


class ContainerSandbox:
    """
    Runs commands inside disposable containers.

    Every run gets a read-only root filesystem, a small no-exec ``/tmp``,
    memory/CPU/PID limits, no network under ``NetworkAccess.DENY``, the work
    directory mounted at ``/workspace`` and each read-only path mounted ``:ro``.
    """

    def __init__(
        self,
        runtime: str | None = None,
        image: str = DEFAULT_IMAGE,
        work_dir: str | None = None,
        memory: str = "256m",
        cpus: str = "1",
        pids_limit: int = 64,
        tmpfs_size: str = "64m",
    ) -> None:
        """
        Initialize the sandbox.

        Args:
            runtime: Runtime executable. Probed from docker, podman, nerdctl if omitted.
            image: Image every command runs in.
            work_dir: Host directory mounted at /workspace when a command sets none.
            memory: Memory limit.
            cpus: CPU limit.
            pids_limit: Process count limit.
            tmpfs_size: Size of the /tmp tmpfs.

        Raises:
            SandboxError: If no runtime is available.
        """
        runtime = runtime or detect_runtime()
        if not runtime:
            raise SandboxError("sandbox: no container runtime found (install docker, podman, or nerdctl)")

        self.runtime = runtime
        self.image = image or DEFAULT_IMAGE
        self.work_dir = work_dir
        self.memory = memory
        self.cpus = cpus
        self.pids_limit = pids_limit
        self.tmpfs_size = tmpfs_size

    @classmethod
    def from_config(cls, config: "ContainerConfig", work_dir: str | None = None) -> "ContainerSandbox":
        return cls(
            runtime=config.runtime,
            image=config.image,
            work_dir=work_dir,
            memory=config.memory,
            cpus=config.cpus,
            pids_limit=config.pids_limit,
            tmpfs_size=config.tmpfs_size,
        )

    def build_run_args(self, command: Command, policy: Policy, name: str) -> list[str]:
        """
        Runtime arguments up to and including the image name.

        Host paths are mounted in canonical form, the same form the path guard
        approves, so a relative work dir is never taken for a named volume.
        """
        args = [
            "run",
            "--rm",
            "--name", name,
            "--read-only",
            "--tmpfs", f"/tmp:rw,noexec,nosuid,size={self.tmpfs_size}",
            "--memory", self.memory,
            "--cpus", self.cpus,
            "--pids-limit", str(self.pids_limit),
        ]  # fmt: skip

        if policy.network_access == NetworkAccess.DENY:
            args += ["--network", "none"]

        work_dir = command.work_dir or self.work_dir
        if work_dir:
            args += ["-v", f"{resolve_path(work_dir)}:{CONTAINER_WORKDIR}:rw", "-w", CONTAINER_WORKDIR]

        for path in policy.read_only_paths:
            host = resolve_path(path)
            args += ["-v", f"{host}:{host}:ro"]

        if command.stdin:
            args.append("-i")

        for key, value in (command.env or {}).items():
            args += ["-e", f"{key}={value}"]

        args.append(self.image)
        return args

    async def exec(self, command: Command, policy: Policy) -> Result:
        if not command.program:
            raise SandboxError("sandbox: empty program")

        work_dir = command.work_dir or self.work_dir
        if work_dir:
            command = dataclasses.replace(command, work_dir=check_allowed(work_dir, policy.allowed_paths))

        name = f"pincer-{uuid.uuid4().hex[:12]}"
        argv = [self.runtime, *self.build_run_args(command, policy, name), command.program, *command.args]

        async def kill_container() -> None:
            logger.debug(f"Killing container {name}")
            await run_process(
                [self.runtime, "kill", name],
                timeout=KILL_TIMEOUT,
                max_output_bytes=4096,
            )

        logger.debug(f"Executing {command.name or command.program!r} in container {name} ({self.image})")
        return await run_process(
            argv,
            stdin=command.stdin,
            timeout=policy.effective_timeout,
            max_output_bytes=policy.effective_max_output_bytes,
            on_kill=kill_container,
        )
