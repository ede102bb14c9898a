"""High-level convenience API.

:func:`open_session` resolves credentials (arguments, env vars, config file,
keychain) and returns a ready :class:`SigningSession`.
:func:`sign_with_external_signer` runs the whole remote signing flow for a
caller that can produce a raw signature value, e.g. from a smart card.

For finer control use :class:`~sigaclient.core.session.SigningSession` and
:class:`~sigaclient.network.gateway.ApiGateway` directly.
"""

from __future__ import annotations

__all__ = ["digest_files_from_paths", "open_session", "sign_with_external_signer"]

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .config import resolve_credentials
from .constants import DEFAULT_CONTAINER_EXTENSION
from .core.session import SigningSession
from .errors import InvalidParamError
from .hashcode.digest import DigestFile
from .network.gateway import ApiGateway

if TYPE_CHECKING:
    import os
    from collections.abc import Callable, Iterable, Mapping

    from .core.session import FinalizedContainer, PreparedSignature
    from .network.auth import RequestCredentials
    from .network.protocol import HttpTransport

_logger = logging.getLogger(__name__)


def open_session(
    credentials: RequestCredentials | None = None,
    *,
    transport: HttpTransport | None = None,
    extension: str = DEFAULT_CONTAINER_EXTENSION,
    **overrides: str | int,
) -> SigningSession:
    """Create a session bound to a fresh gateway client.

    Args:
        credentials: Explicit credentials.  When omitted they are resolved
            by :func:`~sigaclient.config.resolve_credentials`, with
            *overrides* (``url``, ``service_uuid``, ``service_name``,
            ``secret``, ``timeout``) taking priority.
        transport: HTTP transport; defaults to the urllib one.
        extension: Extension of the assembled artifact.

    Raises:
        ConfigError: If no complete set of credentials can be found.
    """
    if credentials is not None and overrides:
        raise InvalidParamError("Pass either credentials or field overrides, not both")
    if credentials is None:
        credentials = resolve_credentials(**overrides)  # type: ignore[arg-type]
    gateway = ApiGateway(credentials, transport=transport)
    return SigningSession(gateway, extension=extension)


def digest_files_from_paths(
    paths: Iterable[str | os.PathLike[str]],
) -> dict[str, DigestFile]:
    """Digest local files, keyed by the base name registered with the gateway.

    Raises:
        InvalidParamError: If two paths share a base name.
        OSError: If a file cannot be read.
    """
    result: dict[str, DigestFile] = {}
    for raw in paths:
        path = Path(raw)
        if path.name in result:
            raise InvalidParamError(f"Duplicate data file name: {path.name}")
        result[path.name] = DigestFile.from_path(path)
    return result


def sign_with_external_signer(
    session: SigningSession,
    files: Mapping[str, str | os.PathLike[str]],
    certificate_hex: str,
    signer: Callable[[PreparedSignature], str],
) -> FinalizedContainer:
    """
    Create, sign, validate and assemble a container in one call.

    Args:
        session: A fresh session (state ``CREATED``).
        files: File name -> local path.  The first file's directory
            receives the ``<containerId>.asice`` artifact.
        certificate_hex: Signer's certificate, DER, hex-encoded.
        signer: Returns the hex signature value over
            ``prepared.data_to_sign_hash``.

    Returns:
        The assembled artifact and the remote delete outcome.
    """
    if not files:
        raise InvalidParamError("At least one data file is required")

    digests = [DigestFile.from_path(path, name) for name, path in files.items()]
    session.create_container(digests)
    prepared = session.prepare_signing(certificate_hex)
    signature_hex = signer(prepared)
    session.finalize_signing(prepared.signature_id, signature_hex)
    return session.end_container_flow(files)
