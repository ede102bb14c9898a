# pyright: reportUnknownMemberType=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""
Signing certificate inspection.

The gateway receives the signer's certificate as hex from the host
application.  These helpers describe it (subject fields, validity) for
logs and for host UIs that want to show who is about to sign.
"""

from __future__ import annotations

__all__ = [
    "certificate_subject",
    "describe_certificate",
    "describe_certificate_hex",
]

import datetime
import logging

from asn1crypto import x509 as asn1_x509

from ..errors import CertificateError

_logger = logging.getLogger(__name__)

# OIDs for common subject fields
_OID_CN = "2.5.4.3"
_OID_EMAIL = "1.2.840.113549.1.9.1"
_OID_ORG = "2.5.4.10"
_OID_SERIAL_NUMBER = "2.5.4.5"


def describe_certificate(cert_der: bytes) -> dict[str, str | None]:
    """
    Extract signer info from a DER-encoded X.509 certificate.

    Returns:
        dict with keys: name (CN), email, organization, serial_number
        (subject serialNumber, the personal code on national ID cards),
        dn (full subject), not_after (ISO 8601).

    Raises:
        CertificateError: If the bytes are not a parseable certificate.
    """
    try:
        cert = asn1_x509.Certificate.load(cert_der)
        subject = cert.subject
        rdns = subject.chosen
    except (ValueError, TypeError, KeyError, OSError) as e:
        raise CertificateError(f"Failed to parse X.509 certificate: {e}") from e

    fields: dict[str, str | None] = {
        "name": None,
        "email": None,
        "organization": None,
        "serial_number": None,
    }
    oid_map = {
        _OID_CN: "name",
        _OID_EMAIL: "email",
        _OID_ORG: "organization",
        _OID_SERIAL_NUMBER: "serial_number",
    }
    for rdn in rdns:
        for attr in rdn:
            oid = attr["type"].dotted
            if oid in oid_map:
                fields[oid_map[oid]] = attr["value"].native

    fields["dn"] = subject.human_friendly
    fields["not_after"] = None

    try:
        not_before = cert.not_valid_before
        not_after = cert.not_valid_after
    except (KeyError, TypeError, ValueError) as e:
        _logger.debug("Cannot read certificate validity dates: %s", e)
    else:
        fields["not_after"] = not_after.isoformat()
        now = datetime.datetime.now(datetime.timezone.utc)
        if now < not_before:
            _logger.warning("Signing certificate is not yet valid (notBefore: %s)", not_before)
        elif now > not_after:
            _logger.warning("Signing certificate has expired (notAfter: %s)", not_after)

    return fields


def describe_certificate_hex(certificate_hex: str) -> dict[str, str | None]:
    """:func:`describe_certificate` for a hex-encoded certificate."""
    try:
        cert_der = bytes.fromhex(certificate_hex)
    except ValueError as e:
        raise CertificateError(f"Certificate is not valid hex: {e}") from e
    return describe_certificate(cert_der)


def certificate_subject(certificate_hex: str) -> str:
    """Short subject label for log lines; never raises."""
    try:
        info = describe_certificate_hex(certificate_hex)
    except CertificateError as e:
        _logger.debug("Signing certificate not parseable locally: %s", e)
        return "<unparsed certificate>"
    return info.get("name") or info.get("dn") or "<unnamed subject>"
