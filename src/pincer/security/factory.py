"""Build the configured sandbox."""

import logging
from typing import TYPE_CHECKING

from pincer.security.container import ContainerSandbox
from pincer.security.sandbox import ProcessSandbox, Sandbox

if TYPE_CHECKING:
    from pincer.config.schema import SandboxConfig

logger = logging.getLogger(__name__)


def create_sandbox(config: "SandboxConfig") -> Sandbox:
    """
    Create the sandbox selected by ``sandbox.mode``.

    Raises:
        SandboxError: If container mode is selected and no runtime is available.
    """
    work_dir = config.work_dir or None
    if config.mode == "container":
        sandbox = ContainerSandbox.from_config(config.container, work_dir=work_dir)
        logger.debug(f"Using container sandbox ({sandbox.runtime}, {sandbox.image})")
        return sandbox

    logger.debug("Using process sandbox")
    return ProcessSandbox(default_work_dir=work_dir)
