"""
Provider exceptions for pincer.

Errors raised by ``Provider.chat`` before streaming starts, and the errors
carried by terminal ``ErrorEvent``s once it has.
"""


class ProviderError(Exception):
    """Base exception for provider errors."""

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


class AuthenticationError(ProviderError):
    """API key invalid or missing."""

    pass


class RateLimitError(ProviderError):
    """Provider rate limit exceeded."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        retry_after: int | None = None,
    ):
        super().__init__(message, provider)
        self.retry_after = retry_after


class NetworkError(ProviderError):
    """Network-related error (connection, timeout, etc.)."""

    pass


class ServerError(ProviderError):
    """Provider server error (5xx status codes)."""

    pass


class InvalidRequestError(ProviderError):
    """Invalid request sent to provider."""

    pass


class StreamError(ProviderError):
    """Failure after streaming began. Always delivered as an ``ErrorEvent``."""

    pass


class StreamReadError(StreamError):
    """The underlying byte stream could not be read."""

    pass


class StreamDecodeError(StreamError):
    """A complete payload could not be decoded."""

    pass


class StreamCancelledError(StreamError):
    """The caller cancelled the stream."""

    def __init__(self, message: str, provider: str | None = None, cause: BaseException | None = None):
        super().__init__(message, provider)
        self.cause = cause


def error_for_status(provider: str, status_code: int, body: str, retry_after: str | None = None) -> ProviderError:
    """
    Build the exception for a non-success HTTP status.

    Args:
        provider: Provider name, used as message prefix.
        status_code: HTTP status code.
        body: Response body, embedded verbatim in the message.
        retry_after: Value of the Retry-After header, if any.

    Returns:
        The most specific ProviderError subclass for the status.
    """
    message = f"{provider}: API returned {status_code}: {body}"

    if status_code in (401, 403):
        return AuthenticationError(message, provider)
    if status_code == 429:
        seconds = int(retry_after) if retry_after and retry_after.isdigit() else None
        return RateLimitError(message, provider, retry_after=seconds)
    if 500 <= status_code < 600:
        return ServerError(message, provider)
    if 400 <= status_code < 500:
        return InvalidRequestError(message, provider)
    return ProviderError(message, provider)
