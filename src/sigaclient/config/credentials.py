"""
Service secret storage and credential resolution.

The HMAC secret lives in the system keychain (service ``sigaclient``,
username = service UUID).  The config file only holds it when the
keychain backend fails at runtime.
"""

from __future__ import annotations

__all__ = [
    "clear_secret",
    "get_credential_storage_info",
    "get_secret",
    "resolve_credentials",
    "save_secret",
]

import logging
import os

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from ..constants import ENV_SECRET
from ..errors import ConfigError
from ..network.auth import RequestCredentials
from ._storage import CONFIG_FILE, load_config, load_raw_config, save_config
from .service import get_service_config

_logger = logging.getLogger(__name__)

_KEYRING_SERVICE = "sigaclient"


def get_credential_storage_info() -> str:
    """Human-readable name of the backend the secret goes to."""
    backend = keyring.get_keyring()
    module = type(backend).__module__ or ""
    if "macOS" in module:
        return "macOS Keychain"
    if "Windows" in module:
        return "Windows Credential Manager"
    if "SecretService" in module:
        return "Linux Secret Service"
    if "KWallet" in module:
        return "KDE Wallet"
    if "fail" in module:
        return f"{CONFIG_FILE} (plaintext)"
    return f"System keychain ({type(backend).__name__})"


def _saved_service_uuid() -> str | None:
    value = load_config().get("service_uuid")
    return value if isinstance(value, str) and value else None


def get_secret(service_uuid: str | None = None) -> str | None:
    """
    Saved secret for *service_uuid* (default: the saved service UUID).

    Keychain first, then the plaintext fallback in the config file.
    """
    service_uuid = service_uuid or _saved_service_uuid()
    if not service_uuid:
        return None

    try:
        secret = keyring.get_password(_KEYRING_SERVICE, service_uuid)
    except KeyringError as e:
        _logger.debug("Keyring read failed, trying config file: %s", e)
    except (OSError, RuntimeError) as e:
        _logger.debug("Keyring backend error, trying config file: %s", e)
    else:
        if secret:
            return secret

    config = load_config()
    if config.get("service_uuid") == service_uuid:
        return config.get("secret") or None
    return None


def save_secret(service_uuid: str, secret: str) -> bool:
    """
    Store the HMAC secret for *service_uuid*.

    Returns:
        True if it went to the keychain, False if it fell back to the
        config file (0600, plaintext).
    """
    if not service_uuid or not secret:
        raise ConfigError("Service UUID and secret are required")

    config = load_raw_config()
    try:
        keyring.set_password(_KEYRING_SERVICE, service_uuid, secret)
    except (KeyringError, OSError, RuntimeError) as e:
        _logger.warning("Keyring save failed, using config file: %s", e)
    else:
        if config.pop("secret", None) is not None:
            save_config(config)
        return True

    config["service_uuid"] = service_uuid
    config["secret"] = secret
    save_config(config)
    return False


def clear_secret() -> None:
    """Remove the saved secret from the keychain and the config file."""
    config = load_raw_config()
    service_uuid = config.get("service_uuid")
    if isinstance(service_uuid, str) and service_uuid:
        try:
            keyring.delete_password(_KEYRING_SERVICE, service_uuid)
            _logger.debug("Deleted keyring entry")
        except PasswordDeleteError:
            pass  # nothing stored
        except (KeyringError, OSError, RuntimeError) as e:
            _logger.debug("Keyring delete failed: %s", e)
    if config.pop("secret", None) is not None:
        save_config(config)
        _logger.info("Removed plaintext secret from %s", CONFIG_FILE)


def resolve_credentials(
    *,
    url: str | None = None,
    service_uuid: str | None = None,
    service_name: str | None = None,
    secret: str | None = None,
    timeout: int | None = None,
) -> RequestCredentials:
    """
    Build :class:`RequestCredentials` from every configured source.

    Per field: explicit argument > env var > config file > keychain (secret).

    Raises:
        ConfigError: If a required field is missing from every source.
    """
    service = get_service_config()
    url = url or service.url
    service_uuid = service_uuid or service.service_uuid
    service_name = service_name or service.service_name

    source = "argument" if secret else "none"
    if not secret:
        secret = os.environ.get(ENV_SECRET, "").strip() or None
        source = "env" if secret else source
    if not secret and service_uuid:
        secret = get_secret(service_uuid)
        source = "saved" if secret else source

    _logger.debug(
        "resolve_credentials: has_url=%s, has_uuid=%s, has_secret=%s, secret_source=%s",
        bool(url),
        bool(service_uuid),
        bool(secret),
        source,
    )
    return RequestCredentials(
        url=url or "",
        service_uuid=service_uuid or "",
        service_name=service_name or "",
        secret=secret or "",
        timeout=timeout if timeout is not None else service.timeout,
    )
