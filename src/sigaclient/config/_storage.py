"""
Config file I/O for the SiGa client.

Reads, validates and atomically writes ``~/.sigaclient/config.json``.
Shared by ``service.py`` and ``credentials.py``.
"""

from __future__ import annotations

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "ConfigDict",
    "load_config",
    "load_raw_config",
    "save_config",
]

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, TypedDict, cast

from ..constants import MAX_TIMEOUT, MIN_TIMEOUT

_logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".sigaclient"
CONFIG_FILE = CONFIG_DIR / "config.json"

_STRING_KEYS = ("url", "service_uuid", "service_name", "secret")


class ConfigDict(TypedDict, total=False):
    url: str
    service_uuid: str
    service_name: str
    timeout: int
    # Only present when the keyring could not store it
    secret: str


def load_raw_config() -> dict[str, object]:
    """Load the config file as-is, keeping unknown keys for merge-and-save."""
    try:
        data: Any = json.loads(CONFIG_FILE.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            return cast("dict[str, object]", data)
        _logger.warning("Config file is not a JSON object, ignoring")
    except FileNotFoundError:
        pass
    except json.JSONDecodeError as e:
        _logger.warning("Config file corrupted, ignoring: %s", e)
    except OSError as e:
        _logger.warning("Cannot read config file: %s", e)
    return {}


def _validate_config_dict(data: dict[str, object]) -> ConfigDict:
    result: ConfigDict = {}
    for key in _STRING_KEYS:
        val = data.get(key)
        if isinstance(val, str) and val:
            result[key] = val  # type: ignore[literal-required]  # dynamic key from known set
    timeout_val = data.get("timeout")
    if isinstance(timeout_val, int) and not isinstance(timeout_val, bool):
        if MIN_TIMEOUT <= timeout_val <= MAX_TIMEOUT:
            result["timeout"] = timeout_val
        else:
            _logger.warning(
                "Config timeout=%d out of range [%d, %d], ignoring",
                timeout_val,
                MIN_TIMEOUT,
                MAX_TIMEOUT,
            )
    return result


def load_config() -> ConfigDict:
    """Load config from disk, returning only known typed keys."""
    return _validate_config_dict(load_raw_config())


def save_config(config: dict[str, object]) -> None:
    """Save config to disk with 0600 permissions (temp file + rename)."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True, mode=0o700)
    if os.name != "nt":
        try:
            CONFIG_DIR.chmod(0o700)
        except OSError:
            _logger.warning("Failed to set restrictive permissions on %s", CONFIG_DIR)
    content = json.dumps(config, indent=2, ensure_ascii=False) + "\n"
    # Written through the fd so the file never exists with wider permissions
    fd, tmp_path = tempfile.mkstemp(dir=CONFIG_DIR, suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            fd = -1
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        if os.name != "nt":
            try:
                tmp.chmod(0o600)
            except OSError:
                _logger.exception(
                    "Failed to set restrictive permissions on %s; "
                    "the service secret may be readable by other users",
                    tmp,
                )
        tmp.replace(CONFIG_FILE)
    except BaseException:
        if fd >= 0:
            os.close(fd)
        tmp.unlink(missing_ok=True)
        raise
