"""siga-client error types."""

from __future__ import annotations

from typing import Any

__all__ = [
    "ApiResponseError",
    "CertificateError",
    "ConfigError",
    "ContainerIdError",
    "ContainerWriteError",
    "InvalidParamError",
    "SessionPreconditionError",
    "SigaError",
    "SignatureIdError",
    "TransportError",
    "ValidationError",
]


class SigaError(Exception):
    """Base error for siga-client operations."""


class ConfigError(SigaError):
    """Configuration validation error (missing or unusable credential field)."""


class InvalidParamError(SigaError):
    """Caller input that can never form a valid request."""


class SessionPreconditionError(SigaError):
    """A session operation was invoked in a state that does not allow it.

    Always raised locally, before any request is sent.
    """


class ContainerIdError(SessionPreconditionError):
    """No live container id: never created, or already finalized/deleted."""

    def __init__(self, message: str = "ContainerId is missing!") -> None:
        super().__init__(message)


class SignatureIdError(SessionPreconditionError):
    """Signature id was not issued by a prepare call on the current container."""


class ApiResponseError(SigaError):
    """The signing gateway answered with an error or an unusable response.

    Args:
        message: Human-readable error description (the remote ``errorMessage``
            when one was present).
        status_code: HTTP status of the response, if a response was received.
        error_code: Remote ``errorCode`` field, if present.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code

    def __reduce__(self) -> tuple[type[ApiResponseError], tuple[str], dict[str, Any]]:
        """Preserve status/error code across pickle/unpickle."""
        return (
            type(self),
            (str(self),),
            {"status_code": self.status_code, "error_code": self.error_code},
        )

    def __setstate__(self, state: dict[str, Any] | None) -> None:
        if state is None:
            return
        self.status_code = state.get("status_code")
        self.error_code = state.get("error_code")


class ValidationError(ApiResponseError):
    """Validation report shows at least one invalid signature in the container."""

    def __init__(self, message: str, *, signatures_count: int, valid_signatures_count: int) -> None:
        super().__init__(message)
        self.signatures_count = signatures_count
        self.valid_signatures_count = valid_signatures_count

    def __reduce__(self) -> tuple[Any, ...]:
        return (
            _rebuild_validation_error,
            (str(self), self.signatures_count, self.valid_signatures_count),
        )


def _rebuild_validation_error(
    message: str, signatures_count: int, valid_signatures_count: int
) -> ValidationError:
    return ValidationError(
        message,
        signatures_count=signatures_count,
        valid_signatures_count=valid_signatures_count,
    )


class TransportError(SigaError):
    """Connection, timeout or TLS failure before an HTTP response was received.

    Args:
        message: Human-readable error description.
        retryable: Whether this error is transient and worth retrying by the
            caller. True for timeouts and refused connections; False for
            TLS/certificate problems. The library itself never retries.
    """

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable

    def __reduce__(self) -> tuple[type[TransportError], tuple[str], dict[str, bool]]:
        """Preserve retryable flag across pickle/unpickle."""
        return (type(self), (str(self),), {"retryable": self.retryable})

    def __setstate__(self, state: dict[str, Any] | None) -> None:
        if state is None:
            return
        self.retryable = state.get("retryable", False)


class ContainerWriteError(SigaError, OSError):
    """Local archive could not be assembled or written."""


class CertificateError(SigaError):
    """Certificate parsing error."""
