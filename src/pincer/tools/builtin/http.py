"""
HTTP request tool for making web API calls.

Network access is governed by the policy: refused outright under ``deny``,
restricted to ``allowed_hosts`` under ``allow_list``.
"""

import logging
from typing import Optional

import httpx

from pincer.security.exceptions import NetworkDeniedError
from pincer.security.policy import NetworkAccess, Policy
from pincer.security.sandbox import Sandbox
from pincer.tools.base import BaseTool, InvalidToolInputError, ToolContext, ToolExecutionError
from pincer.tools.models import HttpRequestInput, ToolParameter

logger = logging.getLogger(__name__)


def host_allowed(host: str, allowed_hosts: tuple[str, ...]) -> bool:
    """Whether ``host`` equals an allowed host or is a subdomain of one."""
    host = host.lower().rstrip(".")
    for allowed in allowed_hosts:
        allowed = allowed.lower().strip().rstrip(".")
        if allowed and (host == allowed or host.endswith("." + allowed)):
            return True
    return False


def check_network(url: httpx.URL, policy: Policy) -> None:
    """Raise ``NetworkDeniedError`` unless the policy lets the request reach ``url``."""
    if policy.network_access == NetworkAccess.DENY:
        raise NetworkDeniedError("http_request: network access denied by sandbox policy")
    if policy.network_access == NetworkAccess.ALLOW_LIST and not host_allowed(url.host, policy.allowed_hosts):
        raise NetworkDeniedError(f"http_request: host {url.host!r} is not in the allowed hosts")


class HttpRequestTool(BaseTool[HttpRequestInput]):
    """Make HTTP requests to web APIs."""

    input_model = HttpRequestInput

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        """Initialize HTTP request tool.

        Args:
            client: Shared client. A short-lived one is created per request if None.
        """
        self._client = client
        super().__init__()

    @property
    def name(self) -> str:
        """Tool name."""
        return "http_request"

    @property
    def description(self) -> str:
        """Tool description."""
        return (
            "Make an HTTP request to a URL and return the response. "
            "Supports GET, POST, PUT, PATCH, DELETE methods."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        """Tool parameters."""
        return [
            ToolParameter(
                name="url",
                type="string",
                description="The URL to send the request to",
                required=True,
            ),
            ToolParameter(
                name="method",
                type="string",
                description="HTTP method (defaults to GET)",
                required=False,
                enum=["GET", "POST", "PUT", "PATCH", "DELETE"],
            ),
            ToolParameter(
                name="headers",
                type="object",
                description="Optional HTTP headers as key-value pairs",
                required=False,
            ),
            ToolParameter(
                name="body",
                type="string",
                description="Optional request body",
                required=False,
            ),
        ]

    @property
    def is_dangerous(self) -> bool:
        """HTTP requests reach external systems."""
        return True

    async def run(self, params: HttpRequestInput, sandbox: Sandbox, policy: Policy, context: ToolContext) -> str:
        """Send the request and return status line plus body.

        The body is cut at the policy's output limit.

        Raises:
            InvalidToolInputError: If the URL is not an http(s) URL
            NetworkDeniedError: If the policy forbids reaching the host
            ToolExecutionError: If the request fails in transport
        """
        try:
            url = httpx.URL(params.url)
        except httpx.InvalidURL as e:
            raise InvalidToolInputError(f"http_request: invalid url: {e}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidToolInputError("http_request: url must start with http:// or https://")

        check_network(url, policy)

        limit = policy.effective_max_output_bytes
        timeout = httpx.Timeout(policy.effective_timeout)

        logger.info(f"HTTP {params.method} {url}")

        client = self._client or httpx.AsyncClient(timeout=timeout)
        try:
            request = client.build_request(
                params.method,
                url,
                headers=params.headers,
                content=params.body.encode() if params.body else None,
                timeout=timeout,
            )
            response = await client.send(request, stream=True)
            try:
                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk[: limit - len(body)])
                    if len(body) >= limit:
                        break
            finally:
                await response.aclose()
        except httpx.HTTPError as e:
            raise ToolExecutionError(f"http_request: {e}") from e
        finally:
            if self._client is None:
                await client.aclose()

        text = bytes(body).decode("utf-8", errors="replace")
        return f"HTTP {response.status_code} {response.reason_phrase}\n\n{text}"
