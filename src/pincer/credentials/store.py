"""
Credential store for pincer.

Stores secrets such as API keys as individual AES-GCM encrypted files. The
256-bit master key lives in its own file next to them, readable by the owner
only.
"""

import logging
import os
import re
from pathlib import Path

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

MASTER_KEY_FILE = "master.key"
SECRET_SUFFIX = ".enc"
NONCE_SIZE = 12

_VALID_NAME = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.\-]*$")

# Environment variables consulted when a provider key is not stored.
PROVIDER_ENV_VARS = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "google": "GOOGLE_API_KEY",
}


class SecretsError(Exception):
    """Base exception for credential store errors."""

    pass


class SecretNotFoundError(SecretsError):
    """Requested secret does not exist."""

    pass


class DecryptionError(SecretsError):
    """Failed to decrypt a secret."""

    pass


class CredentialStore:
    """
    Encrypted credential storage.

    Each secret is a file ``<name>.enc`` holding a random nonce followed by the
    AES-GCM ciphertext. Names are restricted to letters, digits, ``_``, ``.``
    and ``-`` so a name can never address a file outside the directory.
    """

    def __init__(self, secrets_dir: Path | None = None):
        """
        Initialize the credential store.

        Args:
            secrets_dir: Directory to store secrets. Defaults to ~/.pincer/secrets/
        """
        if secrets_dir is None:
            from pincer.storage.paths import get_secrets_dir

            secrets_dir = get_secrets_dir()

        self.secrets_dir = Path(secrets_dir)
        self._aead: AESGCM | None = None

    def _ensure_secrets_dir(self) -> None:
        self.secrets_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        try:
            self.secrets_dir.chmod(0o700)
        except OSError:
            logger.warning(f"Could not set permissions on secrets directory: {self.secrets_dir}")

    def _get_aead(self) -> AESGCM:
        if self._aead is None:
            self._aead = AESGCM(self._load_or_create_key())
        return self._aead

    def _load_or_create_key(self) -> bytes:
        key_path = self.secrets_dir / MASTER_KEY_FILE

        if key_path.exists():
            logger.debug("Loaded existing master key")
            return key_path.read_bytes()

        self._ensure_secrets_dir()
        key = AESGCM.generate_key(bit_length=256)
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(key)
        logger.info("Generated new master key")
        return key

    def _secret_path(self, name: str) -> Path:
        if not _VALID_NAME.match(name):
            raise SecretsError(f"Invalid secret name: {name!r}")
        return self.secrets_dir / f"{name}{SECRET_SUFFIX}"

    def set(self, name: str, value: str) -> None:
        """
        Store an encrypted secret, replacing any previous value.

        Args:
            name: Secret name (e.g., 'openai', 'anthropic').
            value: The secret value to encrypt and store.
        """
        secret_path = self._secret_path(name)
        aead = self._get_aead()
        nonce = os.urandom(NONCE_SIZE)
        encrypted = nonce + aead.encrypt(nonce, value.encode(), name.encode())

        self._ensure_secrets_dir()
        secret_path.write_bytes(encrypted)
        try:
            secret_path.chmod(0o600)
        except OSError:
            logger.warning(f"Could not set permissions on secret file: {name}")

        logger.info(f"Stored secret: {name}")

    def get(self, name: str) -> str | None:
        """
        Retrieve a decrypted secret.

        Args:
            name: Secret name to retrieve.

        Returns:
            The decrypted secret value, or None if not found.

        Raises:
            DecryptionError: If decryption fails (likely master key changed).
        """
        secret_path = self._secret_path(name)
        if not secret_path.exists():
            return None

        encrypted = secret_path.read_bytes()
        if len(encrypted) < NONCE_SIZE:
            raise DecryptionError(f"Secret '{name}' is corrupt")

        nonce, ciphertext = encrypted[:NONCE_SIZE], encrypted[NONCE_SIZE:]
        try:
            return self._get_aead().decrypt(nonce, ciphertext, name.encode()).decode()
        except InvalidTag as e:
            raise DecryptionError(
                f"Failed to decrypt secret '{name}'. Master key may have changed."
            ) from e

    def require(self, name: str) -> str:
        """
        Retrieve a secret that must exist.

        Raises:
            SecretNotFoundError: If the secret is not stored.
        """
        value = self.get(name)
        if value is None:
            raise SecretNotFoundError(f"Secret '{name}' not found")
        return value

    def delete(self, name: str) -> bool:
        """
        Delete a secret.

        Args:
            name: Secret name to delete.

        Returns:
            True if deleted, False if not found.
        """
        secret_path = self._secret_path(name)

        if secret_path.exists():
            secret_path.unlink()
            logger.info(f"Deleted secret: {name}")
            return True

        return False

    def list(self) -> list[str]:
        """
        List all stored secret names.

        Returns:
            Sorted secret names (without .enc extension).
        """
        if not self.secrets_dir.exists():
            return []
        return sorted(p.stem for p in self.secrets_dir.glob(f"*{SECRET_SUFFIX}") if p.is_file())

    def exists(self, name: str) -> bool:
        return self._secret_path(name).exists()

    def get_api_key(self, provider: str) -> str | None:
        """
        Find the API key for a provider.

        The stored secret named after the provider wins; otherwise the
        provider's well-known environment variable is consulted.

        Args:
            provider: Provider name.

        Returns:
            The API key, or None if neither source has one.
        """
        value = self.get(provider)
        if value:
            return value

        env_var = PROVIDER_ENV_VARS.get(provider.lower(), f"{provider.upper()}_API_KEY")
        return os.environ.get(env_var) or None
