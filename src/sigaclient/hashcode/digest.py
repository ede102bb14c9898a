"""
File digests for hashcode containers.

A :class:`DigestFile` carries a file's name, size and its SHA-256/SHA-512
digests (base64).  Digests are computed once, at construction, over the
exact bytes supplied; the bytes themselves are not kept.
"""

from __future__ import annotations

__all__ = [
    "HASH_TYPES",
    "DigestFile",
    "HashType",
    "detect_hash_type",
    "digest_b64",
    "hash_data_to_sign",
    "hash_length_bytes",
    "normalize_algorithm",
]

import base64
import binascii
import hashlib
import logging
import string
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import ApiResponseError, ConfigError

if TYPE_CHECKING:
    import os

_logger = logging.getLogger(__name__)

_HEX_DIGITS = frozenset(string.hexdigits)


@dataclass(frozen=True, slots=True)
class HashType:
    """A supported digest algorithm."""

    label: str
    name: str
    bits: int

    @property
    def hex_length(self) -> int:
        return self.bits // 4

    @property
    def hashlib_name(self) -> str:
        return self.name.lower()


HASH_TYPES: dict[str, HashType] = {
    "SHA-256": HashType("SHA-256", "SHA256", 256),
    "SHA-384": HashType("SHA-384", "SHA384", 384),
    "SHA-512": HashType("SHA-512", "SHA512", 512),
}


def normalize_algorithm(algorithm: str) -> HashType | None:
    """Look up a digest algorithm by any common spelling.

    Accepts ``SHA-256``, ``SHA256`` and ``sha256`` alike.
    """
    key = algorithm.strip().upper().replace("_", "-")
    if key in HASH_TYPES:
        return HASH_TYPES[key]
    for hash_type in HASH_TYPES.values():
        if hash_type.name == key:
            return hash_type
    return None


def detect_hash_type(hex_digest: str) -> str | None:
    """Return the hash type label for a hex digest, or None if unrecognized."""
    if not hex_digest or not set(hex_digest) <= _HEX_DIGITS:
        return None
    for label, hash_type in HASH_TYPES.items():
        if hash_type.hex_length == len(hex_digest):
            return label
    return None


def hash_length_bytes(hash_type: str) -> int | None:
    """Digest length in bytes for a hash type label, or None if unknown."""
    found = HASH_TYPES.get(hash_type)
    return found.bits // 8 if found else None


def digest_b64(algorithm: str, data: bytes) -> str:
    """Compute a digest and return it base64-encoded.

    Raises:
        ConfigError: If the algorithm is not supported.
    """
    hash_type = normalize_algorithm(algorithm)
    if hash_type is None:
        raise ConfigError(f"Unsupported digest algorithm: {algorithm}")
    return base64.b64encode(hashlib.new(hash_type.hashlib_name, data).digest()).decode("ascii")


def hash_data_to_sign(digest_algorithm: str, data_to_sign_b64: str) -> str:
    """Compute the digest an external signer has to sign.

    The gateway returns ``dataToSign`` (base64 of the signed-properties
    structure) and the ``digestAlgorithm`` to use.  The value to sign is
    ``base64(hash(base64decode(dataToSign)))``.

    Raises:
        ApiResponseError: If the gateway named an unknown algorithm or sent
            malformed base64.
    """
    hash_type = normalize_algorithm(digest_algorithm)
    if hash_type is None:
        raise ApiResponseError(f"Gateway requested unsupported digest algorithm: {digest_algorithm}")
    try:
        raw = base64.b64decode(data_to_sign_b64, validate=True)
    except binascii.Error as e:
        raise ApiResponseError(f"Invalid base64 in dataToSign: {e}") from e
    digest = hashlib.new(hash_type.hashlib_name, raw).digest()
    return base64.b64encode(digest).decode("ascii")


@dataclass(frozen=True, slots=True)
class DigestFile:
    """One data file of a hashcode container, reduced to its digests.

    Build with :meth:`from_bytes` or :meth:`from_path`; the name is the
    identifier the gateway (and later the assembled archive) uses.
    """

    name: str
    size: int
    sha256: str
    sha512: str

    @classmethod
    def from_bytes(cls, name: str, size: int, content: bytes) -> DigestFile:
        return cls(
            name=name,
            size=size,
            sha256=digest_b64("SHA-256", content),
            sha512=digest_b64("SHA-512", content),
        )

    @classmethod
    def from_path(cls, path: str | os.PathLike[str], name: str | None = None) -> DigestFile:
        """Digest a file on disk. *name* defaults to the file's basename."""
        p = Path(path)
        content = p.read_bytes()
        _logger.debug("Digesting %s: %d bytes", p, len(content))
        return cls.from_bytes(name if name is not None else p.name, len(content), content)

    def convert(self) -> dict[str, object]:
        """Wire shape used when registering the container with the gateway."""
        return {
            "fileName": self.name,
            "fileHashSha256": self.sha256,
            "fileHashSha512": self.sha512,
            "fileSize": self.size,
        }
