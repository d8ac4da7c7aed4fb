"""
Provider manager for pincer.

Resolves ``provider/model`` strings and aliases, looks up API keys, and
builds providers lazily.
"""

import dataclasses
import logging

import httpx

from pincer.config.schema import ProviderConfig
from pincer.credentials import CredentialStore
from pincer.providers.anthropic import AnthropicProvider
from pincer.providers.base import Provider
from pincer.providers.exceptions import AuthenticationError, ProviderError
from pincer.providers.gemini import GeminiProvider
from pincer.providers.models import ChatRequest
from pincer.providers.ollama import OllamaProvider
from pincer.providers.openai import OpenAIProvider
from pincer.providers.stream import CancelToken, ChatStream

logger = logging.getLogger(__name__)

KEYED_PROVIDERS = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
}
PROVIDER_NAMES = (*KEYED_PROVIDERS, "ollama")


def create_provider(
    name: str,
    api_key: str | None = None,
    base_url: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> Provider:
    """
    Build a provider by name.

    Args:
        name: One of ``anthropic``, ``openai``, ``gemini``, ``ollama``.
        api_key: API key; required for every provider except ollama.
        base_url: Endpoint override.
        client: Optional shared HTTP client.

    Raises:
        AuthenticationError: If a key is required but missing.
        ProviderError: If the provider name is unknown.
    """
    if name == "ollama":
        return OllamaProvider(base_url=base_url, client=client)

    provider_cls = KEYED_PROVIDERS.get(name)
    if provider_cls is None:
        raise ProviderError(f"Unknown provider: {name!r}", name)
    if not api_key:
        raise AuthenticationError(f"{name}: API key not set", name)
    return provider_cls(api_key=api_key, base_url=base_url, client=client)


class ProviderManager:
    """
    Entry point for model access.

    Providers are created on first use and cached for the manager's lifetime.
    """

    def __init__(
        self,
        config: ProviderConfig,
        credentials: CredentialStore | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the provider manager.

        Args:
            config: Provider configuration.
            credentials: Credential store for API keys. Creates a default one if not provided.
            client: HTTP client shared by all providers.
        """
        self.config = config
        self.credentials = credentials or CredentialStore()
        self._client = client
        self._providers: dict[str, Provider] = {}

    def resolve(self, model: str | None = None) -> tuple[str, str]:
        """
        Resolve a model name or alias to ``(provider, model)``.

        Args:
            model: ``provider/model``, an alias, a bare provider name, or None
                for the configured default.

        Returns:
            Provider name and model id. The model id is empty when the
            provider's default should be used.

        Raises:
            ProviderError: If the provider cannot be determined.
        """
        if model is None or model == "default":
            model = self.config.default

        resolved = self.config.aliases.get(model, model)
        if resolved != model:
            logger.debug(f"Resolved alias '{model}' to '{resolved}'")

        provider, _, model_id = resolved.partition("/")
        if provider not in PROVIDER_NAMES:
            raise ProviderError(f"Cannot resolve provider for model {resolved!r}; use provider/model")
        return provider, model_id

    def get_provider(self, name: str) -> Provider:
        """Get (or lazily create) the provider with this name."""
        provider = self._providers.get(name)
        if provider is None:
            api_key = self.credentials.get_api_key(name) if name in KEYED_PROVIDERS else None
            provider = create_provider(
                name,
                api_key=api_key,
                base_url=self.config.base_urls.get(name),
                client=self._client,
            )
            self._providers[name] = provider
            logger.info(f"Initialized provider: {name}")
        return provider

    async def chat(
        self,
        request: ChatRequest,
        model: str | None = None,
        cancel: CancelToken | None = None,
    ) -> ChatStream:
        """
        Start a model turn on the provider that serves ``model``.

        Args:
            request: The turn to send. Its ``model`` field is replaced by the resolved id.
            model: Model selector; falls back to ``request.model``, then the default.
            cancel: Optional cancellation signal.
        """
        provider_name, model_id = self.resolve(model or request.model or None)
        provider = self.get_provider(provider_name)
        return await provider.chat(dataclasses.replace(request, model=model_id), cancel)

    async def aclose(self) -> None:
        for provider in self._providers.values():
            await provider.aclose()
        self._providers.clear()
