"""Digests, hashcode manifests and container assembly."""

from __future__ import annotations

from .container import ContainerAssembler, HashcodeContainer, is_data_entry
from .digest import (
    HASH_TYPES,
    DigestFile,
    detect_hash_type,
    hash_data_to_sign,
    hash_length_bytes,
)
from .manifest import ManifestEntry, build_hashcodes_xml, parse_hashcodes_xml

__all__ = [
    "HASH_TYPES",
    "ContainerAssembler",
    "DigestFile",
    "HashcodeContainer",
    "ManifestEntry",
    "build_hashcodes_xml",
    "detect_hash_type",
    "hash_data_to_sign",
    "hash_length_bytes",
    "is_data_entry",
    "parse_hashcodes_xml",
]
