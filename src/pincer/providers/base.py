"""
Provider interface for pincer.

A provider turns a ``ChatRequest`` into one vendor HTTP call and returns a
``ChatStream`` of normalized events. ``HTTPProvider`` holds the request flow
shared by every vendor; subclasses supply the payload, endpoint, headers and
stream normalizer.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from pincer.providers.http import dispatch_response, new_client, send_request
from pincer.providers.models import ChatRequest, ModelInfo
from pincer.providers.stream import CancelToken, ChatStream, StreamNormalizer

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 4096


class Provider(ABC):
    """Vendor-neutral LLM provider."""

    name: str = ""
    default_model: str = ""

    @abstractmethod
    def models(self) -> list[ModelInfo]:
        """Models this provider advertises."""

    @abstractmethod
    async def chat(self, request: ChatRequest, cancel: CancelToken | None = None) -> ChatStream:
        """
        Start one model turn.

        Args:
            request: The turn to send.
            cancel: Optional cancellation signal polled while streaming.

        Returns:
            A stream of events ending in exactly one DoneEvent or ErrorEvent.

        Raises:
            ProviderError: If the request could not be sent or the vendor
                rejected it before streaming began.
        """

    async def aclose(self) -> None:
        """Release any resources held by the provider."""


class HTTPProvider(Provider):
    """
    Template for providers backed by a JSON-over-HTTP vendor API.

    Subclasses implement ``build_payload``, ``endpoint``, ``headers`` and
    ``new_normalizer``. The HTTP client may be injected, which is how tests
    substitute ``httpx.MockTransport``.
    """

    def __init__(
        self,
        api_key: str = "",
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the provider.

        Args:
            api_key: Vendor API key.
            base_url: Override for the vendor endpoint base.
            client: HTTP client to use. A private client is created if omitted.
        """
        self.api_key = api_key
        self.base_url = base_url
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = new_client()
        return self._client

    def resolve_model(self, request: ChatRequest) -> str:
        return request.model or self.default_model

    def resolve_max_tokens(self, request: ChatRequest) -> int:
        return request.max_tokens if request.max_tokens > 0 else DEFAULT_MAX_TOKENS

    @abstractmethod
    def build_payload(self, request: ChatRequest) -> dict[str, Any]:
        """Translate the request into the vendor's JSON body."""

    @abstractmethod
    def endpoint(self, request: ChatRequest) -> str:
        """URL for the request."""

    @abstractmethod
    def headers(self) -> dict[str, str]:
        """Authentication and versioning headers."""

    @abstractmethod
    def new_normalizer(self) -> StreamNormalizer:
        """Fresh normalizer for one response."""

    async def chat(self, request: ChatRequest, cancel: CancelToken | None = None) -> ChatStream:
        model = self.resolve_model(request)
        logger.debug(f"{self.name}: sending request for model={model} stream={request.stream}")

        payload = self.build_payload(request)
        response = await send_request(
            self.client,
            self.name,
            self.endpoint(request),
            self.headers(),
            payload,
        )
        return dispatch_response(
            response,
            stream=request.stream,
            normalizer=self.new_normalizer(),
            cancel=cancel,
        )

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
