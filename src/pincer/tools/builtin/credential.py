"""Encrypted credential tool."""

import logging

from pincer.credentials import CredentialStore, SecretNotFoundError
from pincer.security.policy import Policy
from pincer.security.sandbox import Sandbox
from pincer.tools.base import BaseTool, InvalidToolInputError, ToolContext
from pincer.tools.models import CredentialInput, ToolParameter

logger = logging.getLogger(__name__)


class CredentialTool(BaseTool[CredentialInput]):
    """Manage secrets in the encrypted credential store."""

    input_model = CredentialInput

    def __init__(self, credentials: CredentialStore):
        """Initialize credential tool.

        Args:
            credentials: Store the actions run against
        """
        self._credentials = credentials
        super().__init__()

    @property
    def name(self) -> str:
        """Tool name."""
        return "credential"

    @property
    def description(self) -> str:
        """Tool description."""
        return "Encrypted credential store for managing secrets and API keys. Actions: get, set, delete, list."

    @property
    def parameters(self) -> list[ToolParameter]:
        """Tool parameters."""
        return [
            ToolParameter(
                name="action",
                type="string",
                description="The action to perform",
                required=True,
                enum=["get", "set", "delete", "list"],
            ),
            ToolParameter(
                name="name",
                type="string",
                description="The credential name (required for get, set, delete)",
                required=False,
            ),
            ToolParameter(
                name="value",
                type="string",
                description="The credential value (required for set)",
                required=False,
            ),
        ]

    @property
    def is_dangerous(self) -> bool:
        """Exposes and changes stored secrets."""
        return True

    async def run(self, params: CredentialInput, sandbox: Sandbox, policy: Policy, context: ToolContext) -> str:
        """Run one credential action.

        Raises:
            InvalidToolInputError: If a field the action needs is missing
            SecretNotFoundError: If the named secret does not exist
            SecretsError: If the store cannot complete the action
        """
        if params.action == "list":
            names = self._credentials.list()
            return "\n".join(names) if names else "no credentials stored"

        if not params.name:
            raise InvalidToolInputError(f"credential: name is required for {params.action}")

        if params.action == "get":
            return self._credentials.require(params.name)

        if params.action == "set":
            if not params.value:
                raise InvalidToolInputError("credential: value is required for set")
            self._credentials.set(params.name, params.value)
            logger.info(f"Credential stored: {params.name}")
            return f"credential {params.name!r} stored"

        if not self._credentials.delete(params.name):
            raise SecretNotFoundError(f"credential {params.name!r} not found")
        logger.info(f"Credential deleted: {params.name}")
        return f"credential {params.name!r} deleted"
