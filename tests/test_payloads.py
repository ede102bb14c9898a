"""Tests for sigaclient.network.payloads -- request bodies."""

from __future__ import annotations

import pytest

from sigaclient.errors import InvalidParamError
from sigaclient.hashcode.digest import DigestFile
from sigaclient.network.payloads import (
    MobileIdSigningRequest,
    SmartIdCertificateChoiceRequest,
    SmartIdSigningRequest,
    build_create_container_payload,
    build_finalize_payload,
    build_remote_signing_payload,
    build_upload_payload,
    hex_to_b64,
    serialize_body,
)


def test_serialize_body_compact():
    assert serialize_body({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'


def test_hex_to_b64():
    assert hex_to_b64("AA", "Signing certificate") == "qg=="
    assert hex_to_b64("deadbeef", "x") == "3q2+7w=="


@pytest.mark.parametrize("value", ["", "zz", "abc"])
def test_hex_to_b64_rejects_bad_input(value):
    with pytest.raises(InvalidParamError, match="Signature value"):
        hex_to_b64(value, "Signature value")


def test_create_container_payload():
    f = DigestFile.from_bytes("a.txt", 5, b"hello")
    assert build_create_container_payload([f]) == {"dataFiles": [f.convert()]}


def test_upload_payload():
    assert build_upload_payload(b"PK\x03\x04") == {"container": "UEsDBA=="}


def test_remote_signing_payload():
    assert build_remote_signing_payload("AA") == {
        "signingCertificate": "qg==",
        "signatureProfile": "LT",
    }


def test_finalize_payload():
    assert build_finalize_payload("BBCC") == {"signatureValue": "u8w="}


def test_mobile_id_request_minimal():
    request = MobileIdSigningRequest("60001019906", "+37200000766")
    assert request.to_payload() == {
        "personIdentifier": "60001019906",
        "phoneNo": "+37200000766",
        "language": "EST",
        "signatureProfile": "LT",
    }


def test_mobile_id_request_full():
    request = MobileIdSigningRequest(
        "60001019906", "+37200000766", "ENG", "Sign contract", roles=("Manager",)
    )
    payload = request.to_payload()
    assert payload["messageToDisplay"] == "Sign contract"
    assert payload["roles"] == ["Manager"]
    assert payload["language"] == "ENG"


def test_smart_id_certificate_choice_request():
    assert SmartIdCertificateChoiceRequest("30303039914").to_payload() == {
        "personIdentifier": "30303039914",
        "country": "EE",
    }


def test_smart_id_signing_request():
    payload = SmartIdSigningRequest("PNOEE-30303039914-MOCK-Q", "Sign?").to_payload()
    assert payload == {
        "documentNumber": "PNOEE-30303039914-MOCK-Q",
        "signatureProfile": "LT",
        "messageToDisplay": "Sign?",
    }
