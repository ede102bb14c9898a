"""
Typed REST operations against the signing gateway.

One method per remote capability.  Each builds
``base/{endpoint}/{segment}/...``, serializes the body once, signs it,
sends it and decodes the answer through :func:`decode_envelope`.
"""

from __future__ import annotations

__all__ = ["ApiGateway"]

import logging
from typing import TYPE_CHECKING

from ..constants import HASHCODE_ENDPOINT, SIGNATURE_PROFILE_LT
from ..errors import InvalidParamError
from .auth import RequestAuthenticator, RequestCredentials
from .parsers import (
    CertificateChoiceStarted,
    ContainerCreated,
    DataFileInfo,
    RemoteSigningStarted,
    ResultResponse,
    SignatureDetail,
    SignatureSummary,
    SigningChallengeStarted,
    SigningStatus,
    ValidationReport,
    decode_envelope,
    parse_certificate_choice,
    parse_container,
    parse_container_created,
    parse_data_files,
    parse_remote_signing,
    parse_result,
    parse_signature_detail,
    parse_signatures,
    parse_signing_challenge,
    parse_signing_status,
    parse_validation_report,
)
from .payloads import (
    MobileIdSigningRequest,
    SmartIdCertificateChoiceRequest,
    SmartIdSigningRequest,
    build_create_container_payload,
    build_finalize_payload,
    build_remote_signing_payload,
    build_upload_payload,
    serialize_body,
)
from .transport import UrllibTransport

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..hashcode.digest import DigestFile
    from .protocol import HttpTransport
    from .transport import HttpResponse

_logger = logging.getLogger(__name__)

# Path delimiters, plus whitespace and control characters no request line can carry
_UNSAFE_SEGMENT_CHARS = frozenset("/?#\x7f" + "".join(chr(c) for c in range(0x21)))


def _check_segment(segment: str) -> str:
    """Segments go into the URI verbatim; refuse ones that would change the path."""
    if not segment or _UNSAFE_SEGMENT_CHARS.intersection(segment):
        raise InvalidParamError(f"Unsafe URI path segment: {segment!r}")
    return segment


class ApiGateway:
    """Client for one signing gateway.

    Args:
        credentials: Service identity, base URL and timeout.
        transport: HTTP transport; defaults to :class:`UrllibTransport`.
        authenticator: Header signer; defaults to one built from *credentials*.

    Attributes:
        last_response: The most recent raw response, for introspection.
    """

    def __init__(
        self,
        credentials: RequestCredentials,
        transport: HttpTransport | None = None,
        authenticator: RequestAuthenticator | None = None,
    ) -> None:
        self.credentials = credentials
        self.transport: HttpTransport = transport if transport is not None else UrllibTransport()
        self.authenticator = (
            authenticator if authenticator is not None else RequestAuthenticator(credentials)
        )
        self.last_response: HttpResponse | None = None

    def build_uri(self, endpoint: str, *segments: str) -> str:
        """``base/endpoint/segment/...``; segments are not percent-encoded."""
        parts = [self.credentials.url, _check_segment(endpoint)]
        parts.extend(_check_segment(s) for s in segments)
        return "/".join(parts)

    def _request(
        self,
        method: str,
        endpoint: str,
        *segments: str,
        payload: dict[str, object] | None = None,
    ) -> dict[str, object]:
        url = self.build_uri(endpoint, *segments)
        body = serialize_body(payload) if payload is not None else ""
        headers = self.authenticator.headers(method, url, body)
        if payload is not None:
            headers["Content-Type"] = "application/json"
        headers["Accept"] = "application/json"

        response = self.transport.send(
            method,
            url,
            body=body.encode("utf-8") if payload is not None else None,
            headers=headers,
            timeout=self.credentials.timeout,
        )
        self.last_response = response
        return decode_envelope(response)

    # ── Container lifecycle ──────────────────────────────────────────

    def create_hashcode_container(self, data_files: Iterable[DigestFile]) -> ContainerCreated:
        data = self._request(
            "POST", HASHCODE_ENDPOINT, payload=build_create_container_payload(data_files)
        )
        created = parse_container_created(data)
        _logger.info("Hashcode container created: %s", created.container_id)
        return created

    def upload_hashcode_container(self, container: bytes) -> ContainerCreated:
        """Upload an existing hashcode container (digest-only ZIP)."""
        data = self._request(
            "POST", HASHCODE_ENDPOINT, "upload", payload=build_upload_payload(container)
        )
        created = parse_container_created(data)
        _logger.info("Hashcode container uploaded: %s", created.container_id)
        return created

    def get_container(self, container_id: str, endpoint: str = HASHCODE_ENDPOINT) -> bytes:
        """Current container bytes (decoded from base64)."""
        return parse_container(self._request("GET", endpoint, container_id))

    def delete_container(
        self, container_id: str, endpoint: str = HASHCODE_ENDPOINT
    ) -> ResultResponse:
        result = parse_result(self._request("DELETE", endpoint, container_id))
        _logger.info("Container %s deleted: %s", container_id, result.result)
        return result

    # ── Inspection ───────────────────────────────────────────────────

    def get_validation_report(
        self, container_id: str, endpoint: str = HASHCODE_ENDPOINT
    ) -> ValidationReport:
        return parse_validation_report(
            self._request("GET", endpoint, container_id, "validationreport")
        )

    def get_data_files(
        self, container_id: str, endpoint: str = HASHCODE_ENDPOINT
    ) -> list[DataFileInfo]:
        return parse_data_files(self._request("GET", endpoint, container_id, "datafiles"))

    def get_signatures(
        self, container_id: str, endpoint: str = HASHCODE_ENDPOINT
    ) -> list[SignatureSummary]:
        return parse_signatures(self._request("GET", endpoint, container_id, "signatures"))

    def get_signature(
        self, container_id: str, signature_id: str, endpoint: str = HASHCODE_ENDPOINT
    ) -> SignatureDetail:
        return parse_signature_detail(
            self._request("GET", endpoint, container_id, "signatures", signature_id)
        )

    # ── Remote (certificate) signing ─────────────────────────────────

    def start_remote_signing(
        self,
        container_id: str,
        certificate_hex: str,
        signature_profile: str = SIGNATURE_PROFILE_LT,
        endpoint: str = HASHCODE_ENDPOINT,
    ) -> RemoteSigningStarted:
        payload = build_remote_signing_payload(certificate_hex, signature_profile)
        return parse_remote_signing(
            self._request("POST", endpoint, container_id, "remotesigning", payload=payload)
        )

    def finalize_remote_signing(
        self,
        container_id: str,
        signature_id: str,
        signature_hex: str,
        endpoint: str = HASHCODE_ENDPOINT,
    ) -> ResultResponse:
        payload = build_finalize_payload(signature_hex)
        return parse_result(
            self._request(
                "PUT", endpoint, container_id, "remotesigning", signature_id, payload=payload
            )
        )

    # ── Mobile-ID ────────────────────────────────────────────────────

    def start_mobile_id_signing(
        self,
        container_id: str,
        request: MobileIdSigningRequest,
        endpoint: str = HASHCODE_ENDPOINT,
    ) -> SigningChallengeStarted:
        return parse_signing_challenge(
            self._request(
                "POST", endpoint, container_id, "mobileidsigning", payload=request.to_payload()
            )
        )

    def get_mobile_id_signing_status(
        self, container_id: str, signature_id: str, endpoint: str = HASHCODE_ENDPOINT
    ) -> SigningStatus:
        data = self._request("GET", endpoint, container_id, "mobileidsigning", signature_id, "status")
        return parse_signing_status(data, "midStatus")

    # ── Smart-ID ─────────────────────────────────────────────────────

    def start_smart_id_certificate_choice(
        self,
        container_id: str,
        request: SmartIdCertificateChoiceRequest,
        endpoint: str = HASHCODE_ENDPOINT,
    ) -> CertificateChoiceStarted:
        data = self._request(
            "POST",
            endpoint,
            container_id,
            "smartidsigning",
            "certificatechoice",
            payload=request.to_payload(),
        )
        return parse_certificate_choice(data)

    def get_smart_id_certificate_choice_status(
        self, container_id: str, certificate_id: str, endpoint: str = HASHCODE_ENDPOINT
    ) -> SigningStatus:
        data = self._request(
            "GET",
            endpoint,
            container_id,
            "smartidsigning",
            "certificatechoice",
            certificate_id,
            "status",
        )
        return parse_signing_status(data, "sidStatus")

    def start_smart_id_signing(
        self,
        container_id: str,
        request: SmartIdSigningRequest,
        endpoint: str = HASHCODE_ENDPOINT,
    ) -> SigningChallengeStarted:
        return parse_signing_challenge(
            self._request(
                "POST", endpoint, container_id, "smartidsigning", payload=request.to_payload()
            )
        )

    def get_smart_id_signing_status(
        self, container_id: str, signature_id: str, endpoint: str = HASHCODE_ENDPOINT
    ) -> SigningStatus:
        data = self._request("GET", endpoint, container_id, "smartidsigning", signature_id, "status")
        return parse_signing_status(data, "sidStatus")
