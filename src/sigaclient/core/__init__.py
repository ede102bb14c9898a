"""Signing session state machine and certificate inspection."""

from __future__ import annotations

from .cert_info import certificate_subject, describe_certificate, describe_certificate_hex
from .session import FinalizedContainer, PreparedSignature, SessionState, SigningSession

__all__ = [
    "FinalizedContainer",
    "PreparedSignature",
    "SessionState",
    "SigningSession",
    "certificate_subject",
    "describe_certificate",
    "describe_certificate_hex",
]
