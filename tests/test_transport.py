"""Tests for sigaclient.network.transport -- urllib transport and safety checks."""

import io
import urllib.error
import urllib.request
from unittest.mock import MagicMock, patch

import pytest

from sigaclient.constants import MAX_RESPONSE_SIZE
from sigaclient.errors import SigaError, TransportError
from sigaclient.network import transport
from sigaclient.network.transport import HttpResponse, UrllibTransport


def _make_urllib_response(data: bytes, status: int = 200) -> MagicMock:
    """Build a mock urllib response that works with chunked read()."""
    mock = MagicMock()
    mock.read.side_effect = [data, b""]
    mock.status = status
    mock.headers.items.return_value = [("Content-Type", "application/json")]
    mock.__enter__ = MagicMock(return_value=mock)
    mock.__exit__ = MagicMock(return_value=False)
    return mock


# ── HttpResponse ─────────────────────────────────────────────────────


def test_http_response_ok_range():
    assert HttpResponse(200, b"").ok
    assert HttpResponse(204, b"").ok
    assert not HttpResponse(302, b"").ok
    assert not HttpResponse(400, b"").ok


def test_http_response_text_replaces_bad_utf8():
    assert HttpResponse(200, b"ok \xff").text() == "ok �"


# ── UrllibTransport.send ─────────────────────────────────────────────


def test_send_success_passes_method_body_headers():
    mock_response = _make_urllib_response(b'{"result":"OK"}')
    with patch.object(transport, "_safe_urlopen", return_value=mock_response) as mock_open:
        result = UrllibTransport().send(
            "PUT",
            "https://siga.example.com/hashcodecontainers/c1",
            body=b'{"a":1}',
            headers={"X-Test": "1"},
            timeout=5,
        )

    assert result == HttpResponse(200, b'{"result":"OK"}', {"Content-Type": "application/json"})
    request = mock_open.call_args.args[0]
    assert isinstance(request, urllib.request.Request)
    assert request.get_method() == "PUT"
    assert request.data == b'{"a":1}'
    assert request.get_header("X-test") == "1"
    assert mock_open.call_args.kwargs["timeout"] == 5


def test_send_http_error_returns_response():
    error = urllib.error.HTTPError(
        "https://siga.example.com/x",
        400,
        "Bad Request",
        {"Content-Type": "application/json"},  # type: ignore[arg-type]
        io.BytesIO(b'{"errorMessage":"nope"}'),
    )
    with patch.object(transport, "_safe_urlopen", side_effect=error):
        result = UrllibTransport().send("GET", "https://siga.example.com/x")
    assert result.status == 400
    assert result.body == b'{"errorMessage":"nope"}'


@pytest.mark.parametrize("url", ["http://siga.example.com/x", "ftp://siga.example.com/x"])
def test_send_rejects_non_https(url):
    with pytest.raises(SigaError, match="Only HTTPS"):
        UrllibTransport().send("GET", url)


def test_send_tls_failure_not_retryable():
    with (
        patch.object(
            transport,
            "_safe_urlopen",
            side_effect=urllib.error.URLError("SSL: CERTIFICATE_VERIFY_FAILED"),
        ),
        pytest.raises(TransportError, match="TLS error") as exc_info,
    ):
        UrllibTransport().send("GET", "https://siga.example.com/x")
    assert exc_info.value.retryable is False


def test_send_connection_refused_retryable():
    with (
        patch.object(
            transport, "_safe_urlopen", side_effect=urllib.error.URLError("Connection refused")
        ),
        pytest.raises(TransportError, match="GET .* failed") as exc_info,
    ):
        UrllibTransport().send("GET", "https://siga.example.com/x")
    assert exc_info.value.retryable is True


def test_send_timeout_retryable():
    with (
        patch.object(transport, "_safe_urlopen", side_effect=TimeoutError("timed out")),
        pytest.raises(TransportError, match="timed out after 7s") as exc_info,
    ):
        UrllibTransport().send("GET", "https://siga.example.com/x", timeout=7)
    assert exc_info.value.retryable is True


# ── _read_with_limit ────────────────────────────────────────────────


def test_read_with_limit_oversized():
    mock_resp = MagicMock()
    chunk_size = 1024 * 1024
    num_chunks = (MAX_RESPONSE_SIZE // chunk_size) + 2
    mock_resp.read.side_effect = [b"\x00" * chunk_size] * num_chunks

    with pytest.raises(SigaError, match=r"exceeds.*limit"):
        transport._read_with_limit(mock_resp, "https://example.com")


# ── _SafeRedirectHandler ────────────────────────────────────────


def test_safe_redirect_refuses_https_to_http():
    handler = transport._SafeRedirectHandler()
    req = urllib.request.Request("https://example.com/path")
    with pytest.raises(SigaError, match="Refused redirect from HTTPS to HTTP"):
        handler.redirect_request(
            req, MagicMock(), 301, "Moved", MagicMock(), "http://evil.com/steal"
        )


def test_safe_redirect_allows_https_to_https():
    handler = transport._SafeRedirectHandler()
    req = urllib.request.Request("https://example.com/old")
    result = handler.redirect_request(
        req, MagicMock(), 301, "Moved", MagicMock(), "https://example.com/new"
    )
    assert result is not None
