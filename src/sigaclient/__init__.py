"""
sigaclient -- Python client for the SiGa remote signing gateway.

Registers file digests with the gateway, drives remote, Mobile-ID and
Smart-ID signing, checks the validation report and assembles the signed
ASiC-E container next to the original files.  Document bodies never
leave the machine.
"""

from __future__ import annotations

from .api import digest_files_from_paths, open_session, sign_with_external_signer
from .constants import __version__
from .core.session import FinalizedContainer, PreparedSignature, SessionState, SigningSession
from .errors import (
    ApiResponseError,
    CertificateError,
    ConfigError,
    ContainerIdError,
    ContainerWriteError,
    InvalidParamError,
    SessionPreconditionError,
    SigaError,
    SignatureIdError,
    TransportError,
    ValidationError,
)
from .hashcode.container import ContainerAssembler, HashcodeContainer
from .hashcode.digest import DigestFile
from .network.auth import RequestAuthenticator, RequestCredentials
from .network.gateway import ApiGateway
from .network.payloads import (
    MobileIdSigningRequest,
    SmartIdCertificateChoiceRequest,
    SmartIdSigningRequest,
)

__all__ = [
    "ApiGateway",
    "ApiResponseError",
    "CertificateError",
    "ConfigError",
    "ContainerAssembler",
    "ContainerIdError",
    "ContainerWriteError",
    "DigestFile",
    "FinalizedContainer",
    "HashcodeContainer",
    "InvalidParamError",
    "MobileIdSigningRequest",
    "PreparedSignature",
    "RequestAuthenticator",
    "RequestCredentials",
    "SessionPreconditionError",
    "SessionState",
    "SigaError",
    "SignatureIdError",
    "SigningSession",
    "SmartIdCertificateChoiceRequest",
    "SmartIdSigningRequest",
    "TransportError",
    "ValidationError",
    "__version__",
    "digest_files_from_paths",
    "open_session",
    "sign_with_external_signer",
]
