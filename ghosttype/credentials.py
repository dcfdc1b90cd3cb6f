"""Keyring storage for the cleanup endpoint API key.

Secrets never go into the JSON settings file; they live in the operating
system's credential store (Keychain, Windows Credential Manager, Secret
Service) through ``keyring``.
"""

import logging

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

logger = logging.getLogger(__name__)

SERVICE_NAME = "GhostType"

CLEANUP_API_KEY = "cleanup_api_key"


class CredentialStorageError(Exception):
    """Raised when the keyring backend fails."""


def _require_key(key: str) -> None:
    if not key or not key.strip():
        raise ValueError("Credential key cannot be empty")


def store_credential(key: str, value: str) -> None:
    """Store ``value`` under ``key``.

    Raises:
        CredentialStorageError: If the keyring backend fails
        ValueError: If key or value is empty
    """
    _require_key(key)
    if not value or not value.strip():
        raise ValueError("Credential value cannot be empty")

    try:
        keyring.set_password(SERVICE_NAME, key, value)
    except KeyringError as e:
        raise CredentialStorageError(f"Failed to store credential: {e}") from e
    logger.info("Stored credential: %s", key)


def retrieve_credential(key: str) -> str | None:
    """Return the stored value for ``key`` or None when nothing is stored."""
    _require_key(key)
    try:
        value = keyring.get_password(SERVICE_NAME, key)
    except KeyringError as e:
        raise CredentialStorageError(f"Failed to retrieve credential: {e}") from e
    if value is None:
        logger.debug("No credential found for: %s", key)
    return value


def delete_credential(key: str) -> None:
    """Delete ``key``. Deleting a missing credential is not an error."""
    _require_key(key)
    try:
        keyring.delete_password(SERVICE_NAME, key)
        logger.info("Deleted credential: %s", key)
    except PasswordDeleteError:
        logger.debug("No credential to delete: %s", key)
    except KeyringError as e:
        raise CredentialStorageError(f"Failed to delete credential: {e}") from e
