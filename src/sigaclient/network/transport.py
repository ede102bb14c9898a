"""
Blocking HTTPS transport for the signing gateway.

Thin layer over ``urllib.request``: sends one request and returns the
status and body, whatever the status.  Interpreting the body (and its
``errorMessage``) is the gateway's job.  Nothing here retries; transient
failures are flagged ``retryable`` for callers that want to.
"""

from __future__ import annotations

__all__ = ["HttpResponse", "UrllibTransport"]

import logging
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol
from urllib.parse import urlparse

from ..constants import BYTES_PER_MB, DEFAULT_TIMEOUT, MAX_RESPONSE_SIZE, RECV_BUFFER_SIZE
from ..errors import SigaError, TransportError

if TYPE_CHECKING:
    import http.client

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    """Raw response as received, before JSON decoding."""

    status: int
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


def _require_https_url(url: str) -> None:
    """Reject non-HTTPS URLs; signed requests never go over plaintext.

    Raises:
        SigaError: If the URL scheme is not https.
    """
    scheme = urlparse(url).scheme.lower()
    if scheme != "https":
        raise SigaError(f"Only HTTPS URLs are allowed (got {scheme}://)")


class _Readable(Protocol):
    def read(self, amt: int = ...) -> bytes: ...


def _read_with_limit(response: _Readable, url: str) -> bytes:
    """Read an HTTP response body with size limit to prevent memory exhaustion."""
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = response.read(RECV_BUFFER_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > MAX_RESPONSE_SIZE:
            raise SigaError(
                f"Response from {url} exceeds {MAX_RESPONSE_SIZE // BYTES_PER_MB} MB limit"
            )
        chunks.append(chunk)
    return b"".join(chunks)


class _SafeRedirectHandler(urllib.request.HTTPRedirectHandler):
    """Redirect handler that refuses HTTPS to HTTP downgrades."""

    def redirect_request(  # type: ignore[override]  # urllib stubs use incompatible signature
        self,
        req: urllib.request.Request,
        fp: http.client.HTTPResponse,
        code: int,
        msg: str,
        headers: http.client.HTTPMessage,
        newurl: str,
    ) -> urllib.request.Request | None:
        parsed_orig = urlparse(req.full_url)
        parsed_new = urlparse(newurl)
        if parsed_orig.scheme == "https" and parsed_new.scheme == "http":
            raise SigaError(f"Refused redirect from HTTPS to HTTP: {newurl}")
        return super().redirect_request(req, fp, code, msg, headers, newurl)


_safe_opener = urllib.request.build_opener(_SafeRedirectHandler)


def _safe_urlopen(request: urllib.request.Request, *, timeout: int) -> http.client.HTTPResponse:
    """Open a Request with safe redirect handling. Thin wrapper to simplify testing."""
    return _safe_opener.open(request, timeout=timeout)


def _is_tls_failure(reason: str) -> bool:
    lowered = reason.lower()
    return "ssl" in lowered or "certificate" in lowered


class UrllibTransport:
    """Default :class:`~sigaclient.network.protocol.HttpTransport`.

    HTTP error statuses are returned as responses, not raised, because the
    gateway reports failures in the JSON body.
    """

    def send(
        self,
        method: str,
        url: str,
        *,
        body: bytes | None = None,
        headers: dict[str, str] | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> HttpResponse:
        """
        Send one request.

        Raises:
            TransportError: On connection, timeout or TLS failures.
            SigaError: On non-HTTPS URLs, unsafe redirects or oversized bodies.
        """
        _require_https_url(url)
        _logger.debug(
            "%s %s (timeout=%ds, %d bytes)", method, url, timeout, len(body) if body else 0
        )
        req = urllib.request.Request(url, data=body, method=method)  # noqa: S310 -- scheme checked above
        for key, value in (headers or {}).items():
            req.add_header(key, value)

        try:
            with _safe_urlopen(req, timeout=timeout) as response:
                data = _read_with_limit(response, url)
                status = response.status
                response_headers = dict(response.headers.items())
        except urllib.error.HTTPError as exc:
            # Error statuses still carry a JSON body worth decoding
            data = _read_with_limit(exc, url) if exc.fp is not None else b""
            status = exc.code
            response_headers = dict(exc.headers.items()) if exc.headers else {}
        except urllib.error.URLError as exc:
            reason = str(exc.reason) if exc.reason else str(exc)
            if _is_tls_failure(reason):
                raise TransportError(f"TLS error: {url}: {reason}", retryable=False) from exc
            raise TransportError(f"{method} {url} failed: {reason}", retryable=True) from exc
        except TimeoutError as exc:
            raise TransportError(
                f"Connection timed out after {timeout}s: {url}", retryable=True
            ) from exc

        _logger.debug("%s %s -> %d, %d bytes", method, url, status, len(data))
        return HttpResponse(status=status, body=data, headers=response_headers)
