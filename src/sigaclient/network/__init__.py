"""Network transport, request authentication and the REST gateway."""

from __future__ import annotations

from .auth import RequestAuthenticator, RequestCredentials
from .gateway import ApiGateway
from .protocol import HttpTransport
from .transport import HttpResponse, UrllibTransport

__all__ = [
    "ApiGateway",
    "HttpResponse",
    "HttpTransport",
    "RequestAuthenticator",
    "RequestCredentials",
    "UrllibTransport",
]
