"""
pincer credential storage.

Provides encrypted storage for API keys and other secrets.
"""

from pincer.credentials.store import (
    PROVIDER_ENV_VARS,
    CredentialStore,
    DecryptionError,
    SecretNotFoundError,
    SecretsError,
)

__all__ = [
    "PROVIDER_ENV_VARS",
    "CredentialStore",
    "DecryptionError",
    "SecretNotFoundError",
    "SecretsError",
]
