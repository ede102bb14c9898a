"""
Application-wide constants for siga-client.

Endpoint names, header names, container entry names, timeouts and
environment variable names are centralized here.
"""

from __future__ import annotations

import importlib.metadata

try:
    __version__ = importlib.metadata.version("siga-client")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.3.0"

__all__ = [
    "ASIC_ENDPOINT",
    "BYTES_PER_MB",
    "CONTAINER_TYPE_ASIC",
    "CONTAINER_TYPE_HASHCODE",
    "DEFAULT_CONTAINER_EXTENSION",
    "DEFAULT_TIMEOUT",
    "ENV_SECRET",
    "ENV_SERVICE_NAME",
    "ENV_SERVICE_UUID",
    "ENV_TIMEOUT",
    "ENV_URL",
    "HASHCODES_SHA256_ENTRY",
    "HASHCODES_SHA512_ENTRY",
    "HASHCODE_ENDPOINT",
    "HEADER_HMAC_ALGORITHM",
    "HEADER_SERVICE_UUID",
    "HEADER_SIGNATURE",
    "HEADER_TIMESTAMP",
    "HMAC_ALGORITHM",
    "MAX_RESPONSE_SIZE",
    "MAX_TIMEOUT",
    "META_INF_PREFIX",
    "MIMETYPE_ENTRY",
    "MIN_TIMEOUT",
    "RECV_BUFFER_SIZE",
    "RESPONSE_PREVIEW_LENGTH",
    "RESULT_OK",
    "SIGNATURE_PROFILE_LT",
    "__version__",
]

# ── Endpoints ─────────────────────────────────────────────────────────

# Regular ASiC-E containers (documents uploaded in full)
ASIC_ENDPOINT = "containers"

# Hashcode containers (digests only)
HASHCODE_ENDPOINT = "hashcodecontainers"

CONTAINER_TYPE_HASHCODE = "HASHCODE"
CONTAINER_TYPE_ASIC = "ASIC"

# Only value of ``result`` that counts as success
RESULT_OK = "OK"

# Time-stamp based signature profile
SIGNATURE_PROFILE_LT = "LT"


# ── Request authentication ────────────────────────────────────────────

HEADER_SERVICE_UUID = "X-Authorization-ServiceUUID"
HEADER_TIMESTAMP = "X-Authorization-Timestamp"
HEADER_SIGNATURE = "X-Authorization-Signature"
HEADER_HMAC_ALGORITHM = "X-Authorization-Hmac-Algorithm"

HMAC_ALGORITHM = "HmacSHA256"


# ── Container layout ─────────────────────────────────────────────────

MIMETYPE_ENTRY = "mimetype"
META_INF_PREFIX = "META-INF/"
HASHCODES_SHA256_ENTRY = "META-INF/hashcodes-sha256.xml"
HASHCODES_SHA512_ENTRY = "META-INF/hashcodes-sha512.xml"

DEFAULT_CONTAINER_EXTENSION = "asice"


# ── Timeout values (seconds) ──────────────────────────────────────────

DEFAULT_TIMEOUT = 60

MIN_TIMEOUT = 1
MAX_TIMEOUT = 3600


# ── Size limits ───────────────────────────────────────────────────────

BYTES_PER_MB = 1024 * 1024

# Maximum response body size (containers come back base64-encoded)
MAX_RESPONSE_SIZE = 100 * BYTES_PER_MB

RECV_BUFFER_SIZE = 8192

# Truncation length for non-JSON bodies quoted in error messages
RESPONSE_PREVIEW_LENGTH = 300


# ── Environment variable names ──────────────────────────────────────

ENV_URL = "SIGA_URL"
ENV_SERVICE_UUID = "SIGA_SERVICE_UUID"
ENV_SERVICE_NAME = "SIGA_SERVICE_NAME"
ENV_SECRET = "SIGA_SECRET"
ENV_TIMEOUT = "SIGA_TIMEOUT"
