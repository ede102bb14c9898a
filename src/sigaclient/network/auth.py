"""
Request authentication for the signing gateway.

Every request carries four headers.  The signature is
``hex(HMAC-SHA256(secret, uuid:timestamp:METHOD:path:body))`` and binds the
service identity, the send time, the method, the URI path and the exact
serialized body.  The body must not be re-serialized after signing.
"""

from __future__ import annotations

__all__ = ["RequestAuthenticator", "RequestCredentials"]

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from ..constants import (
    DEFAULT_TIMEOUT,
    HEADER_HMAC_ALGORITHM,
    HEADER_SERVICE_UUID,
    HEADER_SIGNATURE,
    HEADER_TIMESTAMP,
    HMAC_ALGORITHM,
    MAX_TIMEOUT,
    MIN_TIMEOUT,
)
from ..errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Callable

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestCredentials:
    """Service identity for one gateway.

    Immutable once built, so it can be shared by any number of sessions.
    Every field is checked eagerly; the secret never appears in ``repr``.
    """

    url: str
    service_uuid: str
    service_name: str
    secret: str = field(repr=False)
    timeout: int = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        for name in ("url", "service_uuid", "service_name", "secret"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"SiGa {name.replace('_', ' ')} is missing")

        url = self.url.strip().rstrip("/")
        parsed = urlparse(url)
        if parsed.scheme.lower() != "https" or not parsed.hostname:
            raise ConfigError(f"SiGa url must be an https:// URL (got {self.url!r})")
        object.__setattr__(self, "url", url)

        if not MIN_TIMEOUT <= self.timeout <= MAX_TIMEOUT:
            raise ConfigError(
                f"Timeout {self.timeout} out of range [{MIN_TIMEOUT}, {MAX_TIMEOUT}]"
            )


class RequestAuthenticator:
    """Computes the authentication headers for outgoing requests.

    Args:
        credentials: Service identity and shared secret.
        clock: Returns the current Unix time; injectable for tests.
    """

    def __init__(
        self,
        credentials: RequestCredentials,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._credentials = credentials
        self._clock = clock

    def compute_signature(self, method: str, path: str, body: str, timestamp: int) -> str:
        """Hex HMAC-SHA256 over ``uuid:timestamp:METHOD:path:body``."""
        message = ":".join(
            (self._credentials.service_uuid, str(timestamp), method.upper(), path, body)
        )
        return hmac.new(
            self._credentials.secret.encode("utf-8"),
            message.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def headers(
        self, method: str, url: str, body: str = "", timestamp: int | None = None
    ) -> dict[str, str]:
        """
        Authentication headers for one request.

        Args:
            method: HTTP method.
            url: Full request URL; only its path is signed.
            body: The exact body string that will be sent ("" for none).
            timestamp: Unix seconds; defaults to now.
        """
        if timestamp is None:
            timestamp = int(self._clock())
        path = urlparse(url).path or "/"
        headers = {
            HEADER_SERVICE_UUID: self._credentials.service_uuid,
            HEADER_TIMESTAMP: str(timestamp),
            HEADER_HMAC_ALGORITHM: HMAC_ALGORITHM,
        }
        headers[HEADER_SIGNATURE] = self.compute_signature(method, path, body, timestamp)
        _logger.debug("Signed %s %s at %d (%d body bytes)", method.upper(), path, timestamp, len(body))
        return headers
