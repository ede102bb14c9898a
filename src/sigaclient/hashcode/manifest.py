"""Hashcode manifest builders and parsers (``META-INF/hashcodes-*.xml``)."""

from __future__ import annotations

__all__ = [
    "ManifestEntry",
    "build_hashcodes_xml",
    "manifest_entry_name",
    "parse_hashcodes_xml",
    "xml_escape",
]

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING
from xml.etree.ElementTree import ParseError as _XMLParseError
from xml.sax.saxutils import escape as _xml_escape

import defusedxml.ElementTree as ET
from defusedxml import DefusedXmlException

from ..constants import HASHCODES_SHA256_ENTRY, HASHCODES_SHA512_ENTRY
from ..errors import InvalidParamError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .digest import DigestFile

_logger = logging.getLogger(__name__)

_MANIFEST_ENTRIES = {
    256: HASHCODES_SHA256_ENTRY,
    512: HASHCODES_SHA512_ENTRY,
}


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    """One ``<file-entry>`` of a hashcode manifest."""

    full_path: str
    hash: str
    size: int


def xml_escape(s: str) -> str:
    """Escape XML special characters, quotes included (attribute-safe)."""
    return _xml_escape(s, {'"': "&quot;", "'": "&apos;"})


def manifest_entry_name(bits: int) -> str:
    """Archive entry name of the manifest for a digest size (256 or 512)."""
    try:
        return _MANIFEST_ENTRIES[bits]
    except KeyError:
        raise InvalidParamError(f"No hashcode manifest for SHA-{bits}") from None


def build_hashcodes_xml(files: Iterable[DigestFile], bits: int) -> bytes:
    """
    Build a hashcode manifest listing every file's digest.

    Args:
        files: Data files, in the order they should be listed.
        bits: 256 or 512 -- selects which digest goes into ``hash``.

    Returns:
        UTF-8 encoded XML document.
    """
    manifest_entry_name(bits)
    lines = ['<?xml version="1.0" encoding="UTF-8"?>', "<hashcodes>"]
    for f in files:
        digest = f.sha256 if bits == 256 else f.sha512
        lines.append(
            f'  <file-entry full-path="{xml_escape(f.name)}" '
            f'hash="{xml_escape(digest)}" size="{f.size}"/>'
        )
    lines.append("</hashcodes>")
    return ("\n".join(lines) + "\n").encode("utf-8")


def parse_hashcodes_xml(xml_bytes: bytes) -> list[ManifestEntry]:
    """Parse a hashcode manifest.

    Raises:
        InvalidParamError: If the document is not well-formed, uses entity
            tricks rejected by defusedxml, or has malformed entries.
    """
    try:
        root = ET.fromstring(xml_bytes)
    except (_XMLParseError, DefusedXmlException) as e:
        raise InvalidParamError(f"Invalid hashcode manifest: {e}") from e

    entries: list[ManifestEntry] = []
    for elem in root.iter("file-entry"):
        full_path = elem.get("full-path")
        digest = elem.get("hash")
        size_attr = elem.get("size", "")
        if not full_path or not digest:
            raise InvalidParamError("Hashcode manifest entry lacks full-path or hash")
        try:
            size = int(size_attr)
        except ValueError:
            raise InvalidParamError(
                f"Hashcode manifest entry {full_path!r} has invalid size {size_attr!r}"
            ) from None
        entries.append(ManifestEntry(full_path=full_path, hash=digest, size=size))

    _logger.debug("Parsed hashcode manifest: %d entries", len(entries))
    return entries
