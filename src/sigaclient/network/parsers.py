"""
Response parsers for the signing gateway REST API.

:func:`decode_envelope` is the single place where a raw response becomes a
JSON object, and where ``errorMessage`` turns into :class:`ApiResponseError`
(whatever the HTTP status said).  The ``parse_*`` functions then map each
endpoint's object onto a dataclass with named fields.
"""

from __future__ import annotations

__all__ = [
    "CertificateChoiceStarted",
    "ContainerCreated",
    "DataFileInfo",
    "RemoteSigningStarted",
    "ResultResponse",
    "SignatureDetail",
    "SignatureSummary",
    "SignatureValidation",
    "SigningChallengeStarted",
    "SigningStatus",
    "ValidationReport",
    "decode_envelope",
    "parse_certificate_choice",
    "parse_container",
    "parse_container_created",
    "parse_data_files",
    "parse_remote_signing",
    "parse_result",
    "parse_signature_detail",
    "parse_signatures",
    "parse_signing_challenge",
    "parse_signing_status",
    "parse_validation_report",
]

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..constants import RESPONSE_PREVIEW_LENGTH
from ..errors import ApiResponseError

if TYPE_CHECKING:
    from .transport import HttpResponse

_logger = logging.getLogger(__name__)

_JsonObject = dict[str, Any]


# ── Envelope ─────────────────────────────────────────────────────────


def decode_envelope(response: HttpResponse) -> _JsonObject:
    """
    Decode a gateway response into a JSON object.

    Raises:
        ApiResponseError: If the body carries ``errorMessage`` (regardless of
            status), the status is not 2xx, or the body is not a JSON object.
    """
    status = response.status
    data: Any = {}
    if response.body.strip():
        try:
            data = json.loads(response.body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            preview = response.text()[:RESPONSE_PREVIEW_LENGTH]
            _logger.debug("Non-JSON response (HTTP %d): %s", status, preview)
            raise ApiResponseError(
                f"Invalid JSON response (HTTP {status}): {preview}", status_code=status
            ) from e

    if not isinstance(data, dict):
        raise ApiResponseError(
            f"Expected a JSON object, got {type(data).__name__} (HTTP {status})",
            status_code=status,
        )

    if "errorMessage" in data:
        message = str(data["errorMessage"])
        error_code = data.get("errorCode")
        _logger.warning("Gateway error (HTTP %d, %s): %s", status, error_code, message)
        raise ApiResponseError(
            message,
            status_code=status,
            error_code=str(error_code) if error_code is not None else None,
        )

    if not response.ok:
        raise ApiResponseError(f"Gateway returned HTTP {status}", status_code=status)

    return data


# ── Field helpers ────────────────────────────────────────────────────


def _require_str(data: _JsonObject, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ApiResponseError(f"Gateway response is missing '{key}'")
    return value


def _opt_str(data: _JsonObject, key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    return str(value)


def _require_int(data: _JsonObject, key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ApiResponseError(f"Gateway response is missing integer '{key}'")
    return value


def _opt_int(data: _JsonObject, key: str) -> int | None:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _require_list(data: _JsonObject, key: str) -> list[_JsonObject]:
    value = data.get(key)
    if not isinstance(value, list):
        raise ApiResponseError(f"Gateway response is missing list '{key}'")
    return [item for item in value if isinstance(item, dict)]


# ── Container lifecycle ──────────────────────────────────────────────


@dataclass(frozen=True)
class ContainerCreated:
    container_id: str


@dataclass(frozen=True)
class ResultResponse:
    result: str


def parse_container_created(data: _JsonObject) -> ContainerCreated:
    return ContainerCreated(container_id=_require_str(data, "containerId"))


def parse_container(data: _JsonObject) -> bytes:
    """Decode the base64 ``container`` field."""
    encoded = _require_str(data, "container")
    try:
        return base64.b64decode(encoded, validate=True)
    except binascii.Error as e:
        raise ApiResponseError(f"Invalid base64 in container: {e}") from e


def parse_result(data: _JsonObject) -> ResultResponse:
    return ResultResponse(result=_require_str(data, "result"))


# ── Validation ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class SignatureValidation:
    """Per-signature verdict inside a validation report."""

    id: str | None
    indication: str | None
    sub_indication: str | None = None
    signature_format: str | None = None
    signed_by: str | None = None
    claimed_signing_time: str | None = None


@dataclass(frozen=True)
class ValidationReport:
    """Validation conclusion for the whole container."""

    signatures_count: int
    valid_signatures_count: int
    validation_time: str | None = None
    signature_form: str | None = None
    policy_name: str | None = None
    signatures: tuple[SignatureValidation, ...] = ()

    @property
    def is_valid(self) -> bool:
        """Every signature in the container is valid."""
        return self.valid_signatures_count == self.signatures_count


def parse_validation_report(data: _JsonObject) -> ValidationReport:
    conclusion = data.get("validationConclusion")
    if not isinstance(conclusion, dict):
        raise ApiResponseError("Gateway response is missing 'validationConclusion'")

    policy = conclusion.get("policy")
    signatures = tuple(
        SignatureValidation(
            id=_opt_str(item, "id"),
            indication=_opt_str(item, "indication"),
            sub_indication=_opt_str(item, "subIndication"),
            signature_format=_opt_str(item, "signatureFormat"),
            signed_by=_opt_str(item, "signedBy"),
            claimed_signing_time=_opt_str(item, "claimedSigningTime"),
        )
        for item in conclusion.get("signatures") or []
        if isinstance(item, dict)
    )
    return ValidationReport(
        signatures_count=_require_int(conclusion, "signaturesCount"),
        valid_signatures_count=_require_int(conclusion, "validSignaturesCount"),
        validation_time=_opt_str(conclusion, "validationTime"),
        signature_form=_opt_str(conclusion, "signatureForm"),
        policy_name=_opt_str(policy, "policyName") if isinstance(policy, dict) else None,
        signatures=signatures,
    )


# ── Data files and signatures ────────────────────────────────────────


@dataclass(frozen=True)
class DataFileInfo:
    """A data file as registered with the gateway."""

    file_name: str
    file_hash_sha256: str | None = None
    file_hash_sha512: str | None = None
    file_size: int | None = None


@dataclass(frozen=True)
class SignatureSummary:
    id: str
    generated_signature_id: str | None = None
    signer_info: str | None = None
    signature_profile: str | None = None


@dataclass(frozen=True)
class SignatureDetail:
    id: str
    signer_info: str | None = None
    signature_profile: str | None = None
    signing_certificate: str | None = None
    claimed_signing_time: str | None = None
    trusted_signing_time: str | None = None
    ocsp_response_creation_time: str | None = None
    timestamp_creation_time: str | None = None


def parse_data_files(data: _JsonObject) -> list[DataFileInfo]:
    return [
        DataFileInfo(
            file_name=_require_str(item, "fileName"),
            file_hash_sha256=_opt_str(item, "fileHashSha256"),
            file_hash_sha512=_opt_str(item, "fileHashSha512"),
            file_size=_opt_int(item, "fileSize"),
        )
        for item in _require_list(data, "dataFiles")
    ]


def parse_signatures(data: _JsonObject) -> list[SignatureSummary]:
    return [
        SignatureSummary(
            id=_require_str(item, "id"),
            generated_signature_id=_opt_str(item, "generatedSignatureId"),
            signer_info=_opt_str(item, "signerInfo"),
            signature_profile=_opt_str(item, "signatureProfile"),
        )
        for item in _require_list(data, "signatures")
    ]


def parse_signature_detail(data: _JsonObject) -> SignatureDetail:
    return SignatureDetail(
        id=_require_str(data, "id"),
        signer_info=_opt_str(data, "signerInfo"),
        signature_profile=_opt_str(data, "signatureProfile"),
        signing_certificate=_opt_str(data, "signingCertificate"),
        claimed_signing_time=_opt_str(data, "claimedSigningTime"),
        trusted_signing_time=_opt_str(data, "trustedSigningTime"),
        ocsp_response_creation_time=_opt_str(data, "ocspResponseCreationTime"),
        timestamp_creation_time=_opt_str(data, "timeStampCreationTime"),
    )


# ── Signing ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RemoteSigningStarted:
    data_to_sign: str
    digest_algorithm: str
    generated_signature_id: str


@dataclass(frozen=True)
class SigningChallengeStarted:
    """Mobile-ID / Smart-ID signing started; the user confirms on their device."""

    generated_signature_id: str
    challenge_id: str | None = None


@dataclass(frozen=True)
class CertificateChoiceStarted:
    generated_certificate_id: str


@dataclass(frozen=True)
class SigningStatus:
    """Polled status.  *status* is opaque and left to the caller to interpret."""

    status: str
    document_number: str | None = None


def parse_remote_signing(data: _JsonObject) -> RemoteSigningStarted:
    return RemoteSigningStarted(
        data_to_sign=_require_str(data, "dataToSign"),
        digest_algorithm=_require_str(data, "digestAlgorithm"),
        generated_signature_id=_require_str(data, "generatedSignatureId"),
    )


def parse_signing_challenge(data: _JsonObject) -> SigningChallengeStarted:
    return SigningChallengeStarted(
        generated_signature_id=_require_str(data, "generatedSignatureId"),
        challenge_id=_opt_str(data, "challengeId"),
    )


def parse_certificate_choice(data: _JsonObject) -> CertificateChoiceStarted:
    return CertificateChoiceStarted(
        generated_certificate_id=_require_str(data, "generatedCertificateId")
    )


def parse_signing_status(data: _JsonObject, key: str) -> SigningStatus:
    """Parse a status response; *key* is ``midStatus`` or ``sidStatus``."""
    return SigningStatus(
        status=_require_str(data, key),
        document_number=_opt_str(data, "documentNumber"),
    )
