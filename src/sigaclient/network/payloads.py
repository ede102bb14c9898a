"""Request body builders for the signing gateway REST API."""

from __future__ import annotations

__all__ = [
    "MobileIdSigningRequest",
    "SmartIdCertificateChoiceRequest",
    "SmartIdSigningRequest",
    "build_create_container_payload",
    "build_finalize_payload",
    "build_remote_signing_payload",
    "build_upload_payload",
    "hex_to_b64",
    "serialize_body",
]

import base64
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..constants import SIGNATURE_PROFILE_LT
from ..errors import InvalidParamError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..hashcode.digest import DigestFile


def serialize_body(payload: dict[str, object]) -> str:
    """Serialize a payload once; this exact string is signed and sent."""
    return json.dumps(payload, separators=(",", ":"))


def hex_to_b64(value: str, what: str) -> str:
    """Re-encode a hex string as base64.

    Raises:
        InvalidParamError: If *value* is empty or not valid hex.
    """
    try:
        raw = bytes.fromhex(value)
    except ValueError as e:
        raise InvalidParamError(f"{what} is not valid hex: {e}") from e
    if not raw:
        raise InvalidParamError(f"{what} is empty")
    return base64.b64encode(raw).decode("ascii")


def build_create_container_payload(files: Iterable[DigestFile]) -> dict[str, object]:
    return {"dataFiles": [f.convert() for f in files]}


def build_upload_payload(container: bytes) -> dict[str, object]:
    return {"container": base64.b64encode(container).decode("ascii")}


def build_remote_signing_payload(
    certificate_hex: str, signature_profile: str = SIGNATURE_PROFILE_LT
) -> dict[str, object]:
    return {
        "signingCertificate": hex_to_b64(certificate_hex, "Signing certificate"),
        "signatureProfile": signature_profile,
    }


def build_finalize_payload(signature_hex: str) -> dict[str, object]:
    return {"signatureValue": hex_to_b64(signature_hex, "Signature value")}


@dataclass(frozen=True)
class MobileIdSigningRequest:
    """Parameters for starting a Mobile-ID signature."""

    person_identifier: str
    phone_no: str
    language: str = "EST"
    message_to_display: str | None = None
    signature_profile: str = SIGNATURE_PROFILE_LT
    roles: tuple[str, ...] = ()

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "personIdentifier": self.person_identifier,
            "phoneNo": self.phone_no,
            "language": self.language,
            "signatureProfile": self.signature_profile,
        }
        if self.message_to_display:
            payload["messageToDisplay"] = self.message_to_display
        if self.roles:
            payload["roles"] = list(self.roles)
        return payload


@dataclass(frozen=True)
class SmartIdCertificateChoiceRequest:
    """Parameters for asking a Smart-ID user which certificate to sign with."""

    person_identifier: str
    country: str = "EE"

    def to_payload(self) -> dict[str, object]:
        return {"personIdentifier": self.person_identifier, "country": self.country}


@dataclass(frozen=True)
class SmartIdSigningRequest:
    """Parameters for starting a Smart-ID signature."""

    document_number: str
    message_to_display: str | None = None
    signature_profile: str = SIGNATURE_PROFILE_LT
    roles: tuple[str, ...] = ()

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "documentNumber": self.document_number,
            "signatureProfile": self.signature_profile,
        }
        if self.message_to_display:
            payload["messageToDisplay"] = self.message_to_display
        if self.roles:
            payload["roles"] = list(self.roles)
        return payload
