"""
Gateway service configuration: URL, service identity and timeout.

Values come from environment variables first, then from
``~/.sigaclient/config.json``.  The service secret is handled separately
in ``credentials.py``.
"""

from __future__ import annotations

__all__ = [
    "ServiceConfig",
    "get_service_config",
    "reset_all",
    "save_service_config",
]

import logging
import os
from dataclasses import dataclass

from ..constants import (
    DEFAULT_TIMEOUT,
    ENV_SERVICE_NAME,
    ENV_SERVICE_UUID,
    ENV_TIMEOUT,
    ENV_URL,
    MAX_TIMEOUT,
    MIN_TIMEOUT,
)
from ..errors import ConfigError
from ._storage import load_config, load_raw_config, save_config

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceConfig:
    """Non-secret service settings; any field may be unset."""

    url: str | None
    service_uuid: str | None
    service_name: str | None
    timeout: int = DEFAULT_TIMEOUT


def _env_timeout() -> int | None:
    raw = os.environ.get(ENV_TIMEOUT, "").strip()
    if not raw:
        return None
    try:
        timeout = int(raw)
    except ValueError:
        _logger.warning("Invalid %s value %r, ignoring", ENV_TIMEOUT, raw)
        return None
    if not MIN_TIMEOUT <= timeout <= MAX_TIMEOUT:
        _logger.warning(
            "%s=%d out of range [%d, %d], ignoring", ENV_TIMEOUT, timeout, MIN_TIMEOUT, MAX_TIMEOUT
        )
        return None
    return timeout


def get_service_config() -> ServiceConfig:
    """
    Resolve service settings.

    Priority: env vars > config file > defaults.
    """
    config = load_config()

    def pick(env_name: str, key: str) -> str | None:
        value = os.environ.get(env_name, "").strip()
        if value:
            return value
        saved = config.get(key)
        return saved if isinstance(saved, str) and saved else None

    timeout = _env_timeout()
    if timeout is None:
        timeout = config.get("timeout", DEFAULT_TIMEOUT)

    return ServiceConfig(
        url=pick(ENV_URL, "url"),
        service_uuid=pick(ENV_SERVICE_UUID, "service_uuid"),
        service_name=pick(ENV_SERVICE_NAME, "service_name"),
        timeout=timeout,
    )


def save_service_config(
    url: str,
    service_uuid: str,
    service_name: str,
    timeout: int = DEFAULT_TIMEOUT,
) -> None:
    """
    Persist the non-secret service settings.

    Raises:
        ConfigError: If a field is empty, the URL is not HTTPS, or the
            timeout is out of range.
    """
    for field_name, value in (
        ("url", url),
        ("service_uuid", service_uuid),
        ("service_name", service_name),
    ):
        if not value or not value.strip():
            raise ConfigError(f"SiGa {field_name} is missing")
    if not url.lower().startswith("https://"):
        raise ConfigError(f"SiGa url must use HTTPS: {url}")
    if not MIN_TIMEOUT <= timeout <= MAX_TIMEOUT:
        raise ConfigError(f"Timeout {timeout} out of range [{MIN_TIMEOUT}, {MAX_TIMEOUT}]")

    config = load_raw_config()
    old_uuid = config.get("service_uuid")
    if isinstance(old_uuid, str) and old_uuid != service_uuid.strip():
        # The secret belongs to the old identity
        from .credentials import clear_secret

        clear_secret()
        config = load_raw_config()

    config["url"] = url.strip().rstrip("/")
    config["service_uuid"] = service_uuid.strip()
    config["service_name"] = service_name.strip()
    config["timeout"] = timeout
    save_config(config)
    _logger.info("Saved SiGa service config for %s", config["url"])


def reset_all() -> None:
    """Clear the stored secret and every saved setting."""
    from .credentials import clear_secret

    clear_secret()
    save_config({})
