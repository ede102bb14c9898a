"""
Signing session: the ordered remote calls that turn a set of file digests
into a signed, self-contained ASiC-E container.

Remote (certificate) signing::

    session = SigningSession(gateway)
    session.create_container(digest_files)          # Created -> ContainerOpen
    prepared = session.prepare_signing(cert_hex)    # -> AwaitingSignature
    signature_hex = external_signer(prepared.data_to_sign_hash)
    session.finalize_signing(prepared.signature_id, signature_hex)   # -> Signed
    session.validate()                              # -> Validated
    result = session.end_container_flow({"a.txt": "/uploads/a.txt"})  # -> Finalized -> Deleted

Every precondition (container id present, signature id issued on this
container, a completed signature before validation) is checked locally
before any request is sent.  A session is not thread-safe: use one per
in-flight signing workflow.
"""

from __future__ import annotations

__all__ = [
    "FinalizedContainer",
    "PreparedSignature",
    "SessionState",
    "SigningSession",
]

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..constants import (
    CONTAINER_TYPE_HASHCODE,
    DEFAULT_CONTAINER_EXTENSION,
    RESULT_OK,
    SIGNATURE_PROFILE_LT,
)
from ..errors import (
    ApiResponseError,
    ContainerIdError,
    InvalidParamError,
    SessionPreconditionError,
    SigaError,
    SignatureIdError,
    ValidationError,
)
from ..hashcode.container import ContainerAssembler, HashcodeContainer
from ..hashcode.digest import hash_data_to_sign
from .cert_info import certificate_subject

if TYPE_CHECKING:
    import os
    from collections.abc import Iterable, Mapping
    from pathlib import Path

    from ..hashcode.digest import DigestFile
    from ..network.gateway import ApiGateway
    from ..network.parsers import (
        CertificateChoiceStarted,
        DataFileInfo,
        SignatureDetail,
        SignatureSummary,
        SigningChallengeStarted,
        SigningStatus,
        ValidationReport,
    )
    from ..network.payloads import (
        MobileIdSigningRequest,
        SmartIdCertificateChoiceRequest,
        SmartIdSigningRequest,
    )

_logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    CREATED = "created"
    CONTAINER_OPEN = "container_open"
    AWAITING_SIGNATURE = "awaiting_signature"
    SIGNED = "signed"
    VALIDATED = "validated"
    FINALIZED = "finalized"
    DELETED = "deleted"


_CONSUMED_STATES = frozenset((SessionState.FINALIZED, SessionState.DELETED))


@dataclass(frozen=True)
class PreparedSignature:
    """Result of :meth:`SigningSession.prepare_signing`.

    ``data_to_sign_hash`` is what the certificate holder must sign, with
    the key matching the certificate sent to the gateway.
    """

    container_id: str
    signature_id: str
    data_to_sign: str
    digest_algorithm: str
    data_to_sign_hash: str


@dataclass(frozen=True)
class FinalizedContainer:
    """Outcome of :meth:`SigningSession.end_container_flow`.

    The artifact at ``path`` is complete even when ``deleted`` is False;
    ``delete_error`` then says why the remote copy is still there.
    """

    container_id: str
    path: Path
    deleted: bool
    delete_error: SigaError | None = None


class SigningSession:
    """State machine around one remote hashcode container.

    Args:
        gateway: Gateway client to send requests through.
        extension: Extension of the assembled artifact (``asice``/``bdoc``).
        signature_profile: Profile requested for remote signatures.
    """

    def __init__(
        self,
        gateway: ApiGateway,
        *,
        extension: str = DEFAULT_CONTAINER_EXTENSION,
        signature_profile: str = SIGNATURE_PROFILE_LT,
    ) -> None:
        self.gateway = gateway
        self.extension = extension
        self.signature_profile = signature_profile
        self._state = SessionState.CREATED
        self._container_id: str | None = None
        self._signature_id: str | None = None
        self._pending_signature_ids: set[str] = set()
        self._device_signing = False
        self._registered_names: frozenset[str] | None = None

    @classmethod
    def resume(
        cls,
        gateway: ApiGateway,
        container_id: str,
        *,
        pending_signature_ids: Iterable[str] = (),
        registered_names: Iterable[str] | None = None,
        signed: bool = False,
        **kwargs: str,
    ) -> SigningSession:
        """
        Bind a session to a container created earlier (e.g. by a previous
        web request).

        Args:
            gateway: Gateway client.
            container_id: Id the gateway assigned to the container.
            pending_signature_ids: Ids returned by earlier prepare calls that
                may still be finalized.
            registered_names: File names registered at creation; fetched
                from the gateway at assembly time when omitted.
            signed: Every signature was completed by an earlier request, so
                the session may go straight to validation and completion.

        Raises:
            ContainerIdError: *container_id* is empty.
            InvalidParamError: *signed* given while signatures are pending.
        """
        if not container_id:
            raise ContainerIdError()
        pending = set(pending_signature_ids)
        if signed and pending:
            raise InvalidParamError(
                f"Container {container_id} still has pending signatures {sorted(pending)}"
            )
        session = cls(gateway, **kwargs)
        session._container_id = container_id
        session._pending_signature_ids = pending
        if registered_names is not None:
            session._registered_names = frozenset(registered_names)
        if signed:
            session._state = SessionState.SIGNED
        elif pending:
            session._state = SessionState.AWAITING_SIGNATURE
        else:
            session._state = SessionState.CONTAINER_OPEN
        _logger.debug("Resumed session for container %s", container_id)
        return session

    # ── Introspection ────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def container_id(self) -> str | None:
        return self._container_id

    @property
    def signature_id(self) -> str | None:
        """Id of the most recently prepared remote signature."""
        return self._signature_id

    @property
    def pending_signature_ids(self) -> frozenset[str]:
        return frozenset(self._pending_signature_ids)

    @property
    def registered_names(self) -> frozenset[str] | None:
        return self._registered_names

    # ── Preconditions ────────────────────────────────────────────────

    def _require_container(self) -> str:
        if self._state in _CONSUMED_STATES:
            raise ContainerIdError(
                f"Container {self._container_id} is already {self._state.value}; "
                "start a new session"
            )
        if not self._container_id:
            raise ContainerIdError()
        return self._container_id

    def _require_signed(self) -> str:
        """Container id, once every signature started on it is complete.

        Remote signatures count once finalized.  Mobile-ID and Smart-ID
        signatures complete on the gateway, so a session that started one
        may proceed as soon as no remote signature is still pending; the
        validation report decides whether it actually went through.
        """
        container_id = self._require_container()
        if self._state in (SessionState.SIGNED, SessionState.VALIDATED):
            return container_id
        if (
            self._state is SessionState.AWAITING_SIGNATURE
            and self._device_signing
            and not self._pending_signature_ids
        ):
            return container_id
        raise SessionPreconditionError(
            f"Container {container_id} has no completed signature "
            f"(session is {self._state.value})"
        )

    def _require_fresh(self) -> None:
        if self._state in _CONSUMED_STATES:
            self._require_container()
        if self._state is not SessionState.CREATED:
            raise SessionPreconditionError(
                f"Session is already bound to container {self._container_id}"
            )

    # ── Container creation ───────────────────────────────────────────

    def create_container(
        self,
        files: Iterable[DigestFile],
        container_type: str = CONTAINER_TYPE_HASHCODE,
    ) -> str:
        """
        Register the files' digests with the gateway.

        Returns:
            The gateway-assigned container id.

        Raises:
            InvalidParamError: Unsupported type, no files, or empty/duplicate names.
            SessionPreconditionError: Session already has a container.
            ApiResponseError: Gateway rejected the request or sent no id.
        """
        if container_type != CONTAINER_TYPE_HASHCODE:
            raise InvalidParamError(f"Unknown container type: {container_type}")
        self._require_fresh()

        file_list = list(files)
        if not file_list:
            raise InvalidParamError("At least one data file is required")
        names = [f.name for f in file_list]
        if not all(names):
            raise InvalidParamError("Data file names must not be empty")
        if len(set(names)) != len(names):
            raise InvalidParamError(f"Duplicate data file names: {sorted(names)}")

        created = self.gateway.create_hashcode_container(file_list)
        self._container_id = created.container_id
        self._registered_names = frozenset(names)
        self._state = SessionState.CONTAINER_OPEN
        _logger.info(
            "Session opened container %s with %d data files", created.container_id, len(names)
        )
        return created.container_id

    def upload_container(self, container: bytes) -> str:
        """
        Upload an existing container to add signatures to it.

        A full ASiC-E container is first reduced to its digest-only form, so
        document bodies never leave the machine.

        Returns:
            The gateway-assigned container id.
        """
        self._require_fresh()
        source = HashcodeContainer(container)
        if source.data_file_names():
            names = source.data_file_names()
        else:
            names = [entry.full_path for entry in source.manifest_entries()]

        created = self.gateway.upload_hashcode_container(source.to_hashcode_container())
        self._container_id = created.container_id
        self._registered_names = frozenset(names)
        self._state = SessionState.CONTAINER_OPEN
        _logger.info("Session uploaded container %s (%d data files)", created.container_id, len(names))
        return created.container_id

    def get_container(self) -> bytes:
        """Current container bytes as held by the gateway."""
        return self.gateway.get_container(self._require_container())

    # ── Remote (certificate) signing ─────────────────────────────────

    def prepare_signing(self, certificate_hex: str) -> PreparedSignature:
        """
        Start a signature with the signer's certificate.

        Args:
            certificate_hex: Signer's X.509 certificate, DER, hex-encoded.

        Returns:
            The data to sign and its digest, plus the signature id that
            :meth:`finalize_signing` expects.
        """
        container_id = self._require_container()
        _logger.info(
            "Preparing signature on %s for %s", container_id, certificate_subject(certificate_hex)
        )
        started = self.gateway.start_remote_signing(
            container_id, certificate_hex, self.signature_profile
        )
        prepared = PreparedSignature(
            container_id=container_id,
            signature_id=started.generated_signature_id,
            data_to_sign=started.data_to_sign,
            digest_algorithm=started.digest_algorithm,
            data_to_sign_hash=hash_data_to_sign(started.digest_algorithm, started.data_to_sign),
        )
        self._signature_id = prepared.signature_id
        self._pending_signature_ids.add(prepared.signature_id)
        self._state = SessionState.AWAITING_SIGNATURE
        _logger.debug(
            "Signature %s awaits %s digest", prepared.signature_id, prepared.digest_algorithm
        )
        return prepared

    def finalize_signing(self, signature_id: str, signature_hex: str) -> None:
        """
        Submit the externally produced signature value.

        Raises:
            SignatureIdError: *signature_id* was not issued by
                :meth:`prepare_signing` on this container.
            ApiResponseError: The gateway did not answer ``result == "OK"``.
        """
        container_id = self._require_container()
        if signature_id not in self._pending_signature_ids:
            raise SignatureIdError(
                f"Signature id {signature_id!r} was not prepared on container {container_id}"
            )

        response = self.gateway.finalize_remote_signing(container_id, signature_id, signature_hex)
        if response.result != RESULT_OK:
            raise ApiResponseError(
                f"Finalizing signature {signature_id} failed: result={response.result!r}"
            )

        self._pending_signature_ids.discard(signature_id)
        if not self._pending_signature_ids:
            self._state = SessionState.SIGNED
        _logger.info("Signature %s finalized on %s", signature_id, container_id)

    # ── Mobile-ID / Smart-ID ─────────────────────────────────────────

    def prepare_mobile_signing(self, request: MobileIdSigningRequest) -> SigningChallengeStarted:
        """Start Mobile-ID signing; poll :meth:`get_mobile_signing_status` afterwards."""
        container_id = self._require_container()
        started = self.gateway.start_mobile_id_signing(container_id, request)
        self._device_signing = True
        self._state = SessionState.AWAITING_SIGNATURE
        _logger.info(
            "Mobile-ID signature %s started on %s", started.generated_signature_id, container_id
        )
        return started

    def get_mobile_signing_status(self, signature_id: str) -> SigningStatus:
        return self.gateway.get_mobile_id_signing_status(self._require_container(), signature_id)

    def start_smart_id_certificate_choice(
        self, request: SmartIdCertificateChoiceRequest
    ) -> CertificateChoiceStarted:
        return self.gateway.start_smart_id_certificate_choice(self._require_container(), request)

    def get_smart_id_certificate_status(self, certificate_id: str) -> SigningStatus:
        return self.gateway.get_smart_id_certificate_choice_status(
            self._require_container(), certificate_id
        )

    def prepare_smart_id_signing(self, request: SmartIdSigningRequest) -> SigningChallengeStarted:
        """Start Smart-ID signing; poll :meth:`get_smart_id_signing_status` afterwards."""
        container_id = self._require_container()
        started = self.gateway.start_smart_id_signing(container_id, request)
        self._device_signing = True
        self._state = SessionState.AWAITING_SIGNATURE
        _logger.info(
            "Smart-ID signature %s started on %s", started.generated_signature_id, container_id
        )
        return started

    def get_smart_id_signing_status(self, signature_id: str) -> SigningStatus:
        return self.gateway.get_smart_id_signing_status(self._require_container(), signature_id)

    # ── Inspection ───────────────────────────────────────────────────

    def get_validation_report(self) -> ValidationReport:
        """Fetch the validation report without applying the gate."""
        return self.gateway.get_validation_report(self._require_container())

    def get_data_files(self) -> list[DataFileInfo]:
        return self.gateway.get_data_files(self._require_container())

    def get_signatures(self) -> list[SignatureSummary]:
        return self.gateway.get_signatures(self._require_container())

    def get_signature_info(self, signature_id: str) -> SignatureDetail:
        return self.gateway.get_signature(self._require_container(), signature_id)

    # ── Validation and completion ────────────────────────────────────

    def validate(self) -> ValidationReport:
        """
        Require every signature in the container to be valid.

        Raises:
            SessionPreconditionError: No signature has completed yet.
            ValidationError: ``validSignaturesCount != signaturesCount``.
        """
        container_id = self._require_signed()
        report = self.gateway.get_validation_report(container_id)
        if not report.is_valid:
            _logger.error(
                "Container %s: %d of %d signatures valid",
                container_id,
                report.valid_signatures_count,
                report.signatures_count,
            )
            raise ValidationError(
                f"One of signatures is not valid! ({report.valid_signatures_count} of "
                f"{report.signatures_count} valid in container {container_id})",
                signatures_count=report.signatures_count,
                valid_signatures_count=report.valid_signatures_count,
            )
        self._state = SessionState.VALIDATED
        _logger.info(
            "Container %s validated: %d signatures", container_id, report.signatures_count
        )
        return report

    def end_container_flow(
        self, files: Mapping[str, str | os.PathLike[str]]
    ) -> FinalizedContainer:
        """
        Validate, download, assemble the artifact, then delete the remote copy.

        The validation gate runs first: nothing is written or deleted if any
        signature is invalid.  The remote container is deleted only once the
        artifact is durably on disk; a failed delete is reported on the
        result, never by removing the artifact.

        Args:
            files: Registered file name -> path of the original file.  The
                artifact is written next to the first file.

        Returns:
            Where the artifact went and whether the remote copy is gone.

        Raises:
            SessionPreconditionError: No signature has completed yet.
            ValidationError: Not every signature is valid.
        """
        container_id = self._require_signed()
        if not files:
            raise InvalidParamError("At least one data file is required")

        self.validate()
        base = self.gateway.get_container(container_id)

        expected = self._registered_names
        if expected is None:
            expected = frozenset(info.file_name for info in self.gateway.get_data_files(container_id))

        path = ContainerAssembler(container_id, self.extension).assemble(base, files, expected)
        self._state = SessionState.FINALIZED

        try:
            self._delete_remote(container_id)
        except SigaError as e:
            _logger.warning("Container %s written to %s but remote delete failed: %s", container_id, path, e)
            return FinalizedContainer(container_id, path, deleted=False, delete_error=e)

        self._state = SessionState.DELETED
        return FinalizedContainer(container_id, path, deleted=True)

    def delete(self) -> None:
        """Delete the remote container and end the session."""
        container_id = self._require_container()
        self._delete_remote(container_id)
        self._state = SessionState.DELETED

    def _delete_remote(self, container_id: str) -> None:
        response = self.gateway.delete_container(container_id)
        if response.result != RESULT_OK:
            raise ApiResponseError(
                f"Deleting container {container_id} failed: result={response.result!r}"
            )
