"""Shared test fixtures for the siga-client test suite."""

from __future__ import annotations

import base64
import io
import json
import zipfile
from dataclasses import dataclass, field
from urllib.parse import urlparse

import pytest

from sigaclient.network.auth import RequestAuthenticator, RequestCredentials
from sigaclient.network.gateway import ApiGateway
from sigaclient.network.transport import HttpResponse

BASE_URL = "https://siga.example.com/siga"
SERVICE_UUID = "a7fd7728-a3ea-4975-bfab-f240a67e894f"
SERVICE_NAME = "test-service"
SECRET = "746573745365637265744b6579303031"
FIXED_TIME = 1_700_000_000


def json_response(status: int, payload: object) -> HttpResponse:
    return HttpResponse(status=status, body=json.dumps(payload).encode("utf-8"))


def make_zip(entries: dict[str, bytes]) -> bytes:
    """Build an in-memory ZIP with ``mimetype`` stored first, as ASiC-E does."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries.items():
            info = zipfile.ZipInfo(name, date_time=(2024, 1, 1, 0, 0, 0))
            info.compress_type = zipfile.ZIP_STORED if name == "mimetype" else zipfile.ZIP_DEFLATED
            zf.writestr(info, data)
    return buf.getvalue()


def hashcode_container_bytes() -> bytes:
    """A signed hashcode container as the gateway returns it (no data files)."""
    return make_zip({
        "mimetype": b"application/vnd.etsi.asic-e+zip",
        "META-INF/manifest.xml": b"<manifest/>",
        "META-INF/hashcodes-sha256.xml": b"<hashcodes/>",
        "META-INF/hashcodes-sha512.xml": b"<hashcodes/>",
        "META-INF/signatures0.xml": b"<signature/>",
    })


@dataclass
class RecordedRequest:
    method: str
    url: str
    body: bytes | None
    headers: dict[str, str]
    timeout: int

    @property
    def path(self) -> str:
        return urlparse(self.url).path

    def json(self) -> object:
        return json.loads(self.body or b"null")


@dataclass
class FakeTransport:
    """In-memory transport: routes ``(method, path)`` to canned responses.

    A route may hold several responses; they are served in order and the
    last one repeats.  Unrouted requests get a 404 error body.
    """

    routes: dict[tuple[str, str], list[HttpResponse | Exception]] = field(default_factory=dict)
    requests: list[RecordedRequest] = field(default_factory=list)

    def route(self, method: str, path: str, *responses: HttpResponse | Exception) -> None:
        self.routes[(method, urlparse(BASE_URL).path + path)] = list(responses)

    def route_json(self, method: str, path: str, payload: object, status: int = 200) -> None:
        self.route(method, path, json_response(status, payload))

    def send(
        self,
        method: str,
        url: str,
        *,
        body: bytes | None = None,
        headers: dict[str, str] | None = None,
        timeout: int = 60,
    ) -> HttpResponse:
        request = RecordedRequest(method, url, body, dict(headers or {}), timeout)
        self.requests.append(request)
        queue = self.routes.get((method, request.path))
        if not queue:
            return json_response(404, {"errorCode": "NOT_FOUND", "errorMessage": "No route"})
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(result, Exception):
            raise result
        return result

    def calls(self) -> list[tuple[str, str]]:
        prefix = urlparse(BASE_URL).path
        return [(r.method, r.path.removeprefix(prefix)) for r in self.requests]


@pytest.fixture
def credentials():
    return RequestCredentials(
        url=BASE_URL,
        service_uuid=SERVICE_UUID,
        service_name=SERVICE_NAME,
        secret=SECRET,
    )


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def gateway(credentials, fake_transport):
    authenticator = RequestAuthenticator(credentials, clock=lambda: FIXED_TIME)
    return ApiGateway(credentials, transport=fake_transport, authenticator=authenticator)


@pytest.fixture
def container_b64():
    return base64.b64encode(hashcode_container_bytes()).decode("ascii")
