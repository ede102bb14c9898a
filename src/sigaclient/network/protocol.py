"""
Transport protocol abstraction for the signing gateway.

The gateway depends on this protocol, not on urllib, so tests and host
applications can plug in their own HTTP stack.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .transport import HttpResponse


class HttpTransport(Protocol):
    """Sends one already-authenticated HTTP request."""

    def send(
        self,
        method: str,
        url: str,
        *,
        body: bytes | None = None,
        headers: dict[str, str] | None = None,
        timeout: int = ...,
    ) -> HttpResponse:
        """
        Send a request and return the response, whatever its status.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE).
            url: Absolute URL.
            body: Request body, sent byte-for-byte as signed.
            headers: Request headers, authentication headers included.
            timeout: Request timeout in seconds.

        Returns:
            Status code and raw body.

        Raises:
            TransportError: If no response was received.
        """
        ...
