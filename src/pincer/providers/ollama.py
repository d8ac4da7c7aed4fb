"""Ollama provider, via its OpenAI-compatible endpoint."""

import dataclasses
import os

import httpx

from pincer.providers.base import Provider
from pincer.providers.models import ChatRequest, ModelInfo
from pincer.providers.openai import OpenAIProvider
from pincer.providers.stream import CancelToken, ChatStream

PROVIDER_NAME = "ollama"
OLLAMA_DEFAULT_URL = "http://localhost:11434/v1/chat/completions"
DEFAULT_MODEL = "llama3"

# Ollama ignores the bearer token but the OpenAI protocol requires one.
PLACEHOLDER_API_KEY = "ollama"


class OllamaProvider(Provider):
    """
    Local models served by Ollama.

    Requests go through an ``OpenAIProvider`` pointed at the local server, so
    the stream is normalized exactly like OpenAI's. No API key is needed.
    """

    name = PROVIDER_NAME

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the provider.

        Args:
            base_url: Chat completions URL. Falls back to ``OLLAMA_BASE_URL``,
                then to the local default.
            model: Default model for requests that do not name one.
            client: Optional ``httpx.AsyncClient``.
        """
        self.base_url = base_url or os.environ.get("OLLAMA_BASE_URL") or OLLAMA_DEFAULT_URL
        self.default_model = model or DEFAULT_MODEL
        self._inner = OpenAIProvider(
            api_key=PLACEHOLDER_API_KEY,
            base_url=self.base_url,
            client=client,
            name=PROVIDER_NAME,
            default_model=self.default_model,
            models=self.models(),
        )

    def models(self) -> list[ModelInfo]:
        return [ModelInfo(id=self.default_model, name=self.default_model, max_context_tokens=8192)]

    async def chat(self, request: ChatRequest, cancel: CancelToken | None = None) -> ChatStream:
        if not request.model:
            request = dataclasses.replace(request, model=self.default_model)
        return await self._inner.chat(request, cancel)

    async def aclose(self) -> None:
        await self._inner.aclose()
