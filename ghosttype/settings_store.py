"""Persistent settings storage for GhostType."""

import json
import logging
from pathlib import Path
from typing import Any

from ghosttype import credentials
from ghosttype.config import GhostingConfig, config_from_settings

logger = logging.getLogger(__name__)

SETTINGS_FILE = Path.home() / ".ghosttype" / "ghosttype_settings.json"

# Settings keys kept in the OS keyring instead of the JSON file
SECURE_KEYS = {"llm_key": credentials.CLEANUP_API_KEY}


def load_settings() -> dict[str, Any]:
    """Load saved settings merged over the defaults. Never raises.

    Plaintext API keys found in the file are moved into the keyring.
    """
    settings = GhostingConfig().to_settings()

    try:
        if SETTINGS_FILE.is_file():
            saved = json.loads(SETTINGS_FILE.read_text(encoding="utf-8"))
            if isinstance(saved, dict):
                _migrate_secure_settings(saved)
                settings.update(saved)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Could not read saved settings: %s", e)
    return settings


def save_settings(settings: dict[str, Any]) -> bool:
    """Persist settings to disk. Returns True on success, False otherwise."""
    try:
        _store_secure_settings(settings)
        to_save = {k: v for k, v in settings.items() if k not in SECURE_KEYS}
        SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
        SETTINGS_FILE.write_text(json.dumps(to_save, indent=2), encoding="utf-8")
        return True
    except (OSError, UnicodeEncodeError, TypeError, ValueError) as e:
        logger.error("Could not save settings: %s", e)
        return False


def load_config() -> GhostingConfig:
    """Return the persisted configuration."""
    return config_from_settings(load_settings())


def save_config(config: GhostingConfig) -> bool:
    return save_settings(config.to_settings())


def get_api_key() -> str | None:
    """Return the cleanup endpoint API key from the keyring, if any."""
    try:
        return credentials.retrieve_credential(SECURE_KEYS["llm_key"])
    except (credentials.CredentialStorageError, ValueError) as e:
        logger.warning("Failed to retrieve API key from credential manager: %s", e)
        return None


def _migrate_secure_settings(settings: dict[str, Any]) -> None:
    """Move plaintext secrets into the keyring (modifies ``settings`` in place)."""
    for key, credential_key in SECURE_KEYS.items():
        value = settings.get(key)
        if not isinstance(value, str) or not value.strip():
            settings.pop(key, None)
            continue
        try:
            credentials.store_credential(credential_key, value)
        except (credentials.CredentialStorageError, ValueError) as e:
            logger.warning("Failed to migrate %s: %s", key, e)
            continue
        del settings[key]
        logger.info("Migrated %s to secure storage", key)


def _store_secure_settings(settings: dict[str, Any]) -> None:
    for key, credential_key in SECURE_KEYS.items():
        value = settings.get(key)
        if isinstance(value, str) and value.strip():
            try:
                credentials.store_credential(credential_key, value)
            except (credentials.CredentialStorageError, ValueError) as e:
                logger.warning("Failed to store %s in credential manager: %s", key, e)
