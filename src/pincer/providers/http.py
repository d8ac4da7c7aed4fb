"""HTTP transport shared by the vendor providers."""

import logging
from typing import Any

import httpx

from pincer.providers.exceptions import InvalidRequestError, NetworkError, error_for_status
from pincer.providers.stream import (
    CancelToken,
    ChatStream,
    StreamNormalizer,
    pump_document,
    pump_lines,
)

logger = logging.getLogger(__name__)

# Streaming responses may pause between tokens; the read timeout bounds one pause.
DEFAULT_HTTP_TIMEOUT = httpx.Timeout(120.0, connect=10.0)


def new_client() -> httpx.AsyncClient:
    """Create the HTTP client a provider uses when none is injected."""
    return httpx.AsyncClient(timeout=DEFAULT_HTTP_TIMEOUT)


async def send_request(
    client: httpx.AsyncClient,
    provider: str,
    url: str,
    headers: dict[str, str],
    payload: dict[str, Any],
) -> httpx.Response:
    """
    POST a JSON payload and return the response with its body still unread.

    Args:
        client: HTTP client.
        provider: Provider name, used in error messages.
        url: Endpoint URL.
        headers: Extra request headers.
        payload: JSON body.

    Returns:
        A successful response whose body the caller must close.

    Raises:
        InvalidRequestError: If the request cannot be built.
        NetworkError: If the vendor cannot be reached.
        ProviderError: For a non-success status; the body is embedded in the message.
    """
    try:
        request = client.build_request(
            "POST",
            url,
            json=payload,
            headers={"Content-Type": "application/json", **headers},
        )
    except (TypeError, ValueError) as e:
        raise InvalidRequestError(f"{provider}: building request: {e}", provider) from e

    try:
        response = await client.send(request, stream=True)
    except httpx.HTTPError as e:
        raise NetworkError(f"{provider}: sending request: {e}", provider) from e

    if response.is_success:
        return response

    try:
        body = (await response.aread()).decode("utf-8", errors="replace")
    except httpx.HTTPError:
        body = ""
    finally:
        await response.aclose()

    logger.warning(f"{provider}: API returned {response.status_code}")
    raise error_for_status(provider, response.status_code, body, response.headers.get("retry-after"))


def dispatch_response(
    response: httpx.Response,
    *,
    stream: bool,
    normalizer: StreamNormalizer,
    cancel: CancelToken | None = None,
) -> ChatStream:
    """
    Hand a response to a background task that normalizes it into a ``ChatStream``.

    The task owns the response and closes it when it finishes, whether the
    stream ended normally, failed, or was closed by the consumer.
    """
    chat_stream = ChatStream(normalizer.provider)

    async def produce() -> None:
        try:
            if stream:
                await pump_lines(chat_stream, response.aiter_lines(), normalizer, cancel)
            else:
                await pump_document(chat_stream, response.aread, normalizer, cancel)
        finally:
            await response.aclose()

    chat_stream.start(produce())
    return chat_stream
