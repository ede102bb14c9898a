"""
Service configuration and secret storage.

Import from this package rather than the individual submodules.
"""

from __future__ import annotations

from ._storage import CONFIG_FILE
from .credentials import (
    clear_secret,
    get_credential_storage_info,
    get_secret,
    resolve_credentials,
    save_secret,
)
from .service import ServiceConfig, get_service_config, reset_all, save_service_config

__all__ = [
    "CONFIG_FILE",
    "ServiceConfig",
    "clear_secret",
    "get_credential_storage_info",
    "get_secret",
    "get_service_config",
    "reset_all",
    "resolve_credentials",
    "save_secret",
    "save_service_config",
]
