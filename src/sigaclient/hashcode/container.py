"""
Hashcode container inspection and final ASiC-E assembly.

The gateway only ever sees digests.  It hands back a *hashcode
container*: a ZIP holding ``mimetype``, the manifests and the signatures,
but no file bodies.  :class:`ContainerAssembler` merges that archive with
the caller's original files into the self-contained artifact.

The names of the inserted files must be exactly the names registered at
container creation; the archive would still open fine otherwise, but the
signature would fail external verification.
"""

from __future__ import annotations

__all__ = [
    "ContainerAssembler",
    "HashcodeContainer",
    "is_data_entry",
]

import io
import logging
import os
import shutil
import tempfile
import time
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING

from ..constants import (
    DEFAULT_CONTAINER_EXTENSION,
    HASHCODES_SHA256_ENTRY,
    HASHCODES_SHA512_ENTRY,
    META_INF_PREFIX,
    MIMETYPE_ENTRY,
)
from ..errors import ContainerWriteError, InvalidParamError
from .digest import DigestFile
from .manifest import ManifestEntry, build_hashcodes_xml, manifest_entry_name, parse_hashcodes_xml

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping

_logger = logging.getLogger(__name__)

_COPY_BUFFER_SIZE = 1024 * 1024

# Earliest timestamp a ZIP entry can carry
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


def is_data_entry(name: str) -> bool:
    """True for archive entries that are signed data files."""
    return name != MIMETYPE_ENTRY and not name.startswith(META_INF_PREFIX) and not name.endswith("/")


def _open_zip(data: bytes) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise InvalidParamError(f"Not a ZIP container: {e}") from e


def _copy_entry(src: zipfile.ZipFile, dst: zipfile.ZipFile, info: zipfile.ZipInfo) -> None:
    """Copy one entry keeping its name, timestamp and compression method."""
    dst.writestr(info, src.read(info.filename))


class HashcodeContainer:
    """Read-only view of an ASiC-E or hashcode container.

    Accepts the archive as bytes or as a path.  Used to decide whether an
    uploaded archive already carries a digest-only manifest, to pull its
    data files out, and to convert between a full container and the
    digest-only form the gateway accepts.
    """

    def __init__(self, source: bytes | str | os.PathLike[str]) -> None:
        if isinstance(source, bytes):
            self._data = source
        else:
            self._data = Path(source).read_bytes()
        with _open_zip(self._data) as zf:
            self._names = zf.namelist()

    @property
    def data(self) -> bytes:
        return self._data

    def entry_names(self) -> list[str]:
        return list(self._names)

    def is_hashcode_container(self) -> bool:
        return HASHCODES_SHA256_ENTRY in self.entry_names()

    def data_file_names(self) -> list[str]:
        return [name for name in self._names if is_data_entry(name)]

    def data_files(self) -> list[DigestFile]:
        """Digest every data file carried in the archive."""
        files: list[DigestFile] = []
        with _open_zip(self._data) as zf:
            for info in zf.infolist():
                if is_data_entry(info.filename):
                    content = zf.read(info.filename)
                    files.append(DigestFile.from_bytes(info.filename, info.file_size, content))
        return files

    def manifest_entries(self, bits: int = 256) -> list[ManifestEntry]:
        """Entries of the SHA-256 (or SHA-512) hashcode manifest.

        Raises:
            InvalidParamError: If the archive has no such manifest.
        """
        entry = manifest_entry_name(bits)
        if entry not in self.entry_names():
            raise InvalidParamError(f"Container has no {entry}")
        with _open_zip(self._data) as zf:
            return parse_hashcodes_xml(zf.read(entry))

    def extract_data_files(self, output_dir: str | os.PathLike[str]) -> list[Path]:
        """
        Write every data file into *output_dir*.

        Entry names that would resolve outside *output_dir* are refused.

        Returns:
            Paths of the written files, in archive order.

        Raises:
            InvalidParamError: If *output_dir* is not a directory or an entry
                name escapes it.
        """
        out = Path(output_dir)
        if not out.is_dir():
            raise InvalidParamError(f"Output directory does not exist: {out}")
        root = out.resolve()

        written: list[Path] = []
        with _open_zip(self._data) as zf:
            for info in zf.infolist():
                if not is_data_entry(info.filename):
                    continue
                target = (root / info.filename).resolve()
                if not target.is_relative_to(root):
                    raise InvalidParamError(f"Refusing to extract {info.filename!r} outside {root}")
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, target.open("wb") as dst:
                    shutil.copyfileobj(src, dst, _COPY_BUFFER_SIZE)
                written.append(target)
        _logger.debug("Extracted %d data files to %s", len(written), root)
        return written

    def container_without_files(self) -> bytes:
        """The archive with every data file removed, other entries untouched."""
        buf = io.BytesIO()
        with _open_zip(self._data) as src, zipfile.ZipFile(buf, "w") as dst:
            for info in src.infolist():
                if not is_data_entry(info.filename):
                    _copy_entry(src, dst, info)
        return buf.getvalue()

    def to_hashcode_container(self) -> bytes:
        """
        Digest-only form of this container, ready for upload.

        Data files are dropped and replaced by freshly built SHA-256 and
        SHA-512 manifests; signatures and other ``META-INF`` entries are
        carried over.  An archive that already is a bare hashcode container
        is returned unchanged.
        """
        files = self.data_files()
        if not files and self.is_hashcode_container():
            return self._data

        manifests = {HASHCODES_SHA256_ENTRY, HASHCODES_SHA512_ENTRY}
        buf = io.BytesIO()
        with _open_zip(self._data) as src, zipfile.ZipFile(buf, "w") as dst:
            for info in src.infolist():
                if is_data_entry(info.filename) or info.filename in manifests:
                    continue
                _copy_entry(src, dst, info)
            dst.writestr(
                HASHCODES_SHA256_ENTRY, build_hashcodes_xml(files, 256), zipfile.ZIP_DEFLATED
            )
            dst.writestr(
                HASHCODES_SHA512_ENTRY, build_hashcodes_xml(files, 512), zipfile.ZIP_DEFLATED
            )
        _logger.info("Converted container to hashcode form: %d data files", len(files))
        return buf.getvalue()

    def to_regular_container(self, files: Mapping[str, str | os.PathLike[str]]) -> bytes:
        """
        Regular ASiC-E form of this hashcode container.

        The original files are added under their manifest names and both
        hashcode manifests are dropped; every other entry is copied as is.

        Args:
            files: Manifest file name -> path of the original file.

        Raises:
            InvalidParamError: If this is not a hashcode container, or the
                names in *files* differ from the manifest's.
            OSError: If an original file cannot be read.
        """
        registered = {entry.full_path for entry in self.manifest_entries()}
        if set(files) != registered:
            raise InvalidParamError(
                f"File names {sorted(files)} do not match the manifest {sorted(registered)}"
            )

        manifests = {HASHCODES_SHA256_ENTRY, HASHCODES_SHA512_ENTRY}
        buf = io.BytesIO()
        with _open_zip(self._data) as src, zipfile.ZipFile(buf, "w") as dst:
            for info in src.infolist():
                if info.filename in manifests or info.filename in files:
                    continue
                _copy_entry(src, dst, info)
            for name, path in files.items():
                _append_file(dst, name, Path(path))
        _logger.info("Converted hashcode container to regular form: %d data files", len(files))
        return buf.getvalue()


class ContainerAssembler:
    """Writes the final artifact for one container id.

    Args:
        container_id: Gateway-assigned id; becomes the output file's stem.
        extension: Output extension without the dot (``asice`` or ``bdoc``).
    """

    def __init__(self, container_id: str, extension: str = DEFAULT_CONTAINER_EXTENSION) -> None:
        if not container_id:
            raise InvalidParamError("Container id is required for assembly")
        extension = extension.lstrip(".")
        if not extension:
            raise InvalidParamError("Container extension must not be empty")
        self.container_id = container_id
        self.extension = extension

    def output_path(self, files: Mapping[str, str | os.PathLike[str]]) -> Path:
        """``<directory of first file>/<container id>.<extension>``."""
        if not files:
            raise InvalidParamError("At least one data file is required")
        first = Path(next(iter(files.values())))
        return first.parent / f"{self.container_id}.{self.extension}"

    def assemble(
        self,
        base: bytes,
        files: Mapping[str, str | os.PathLike[str]],
        expected_names: Collection[str] | None = None,
    ) -> Path:
        """
        Merge the gateway's container with the original files on disk.

        The base archive is written byte-for-byte and each file is then
        appended under its registered name; existing entries are neither
        rewritten nor recompressed.  The artifact only appears at its final
        path once it has been fully written and fsynced.

        Args:
            base: Container bytes as returned by the gateway.
            files: Registered file name -> path of the original file.
            expected_names: Names registered with the gateway.  The keys of
                *files* must equal this set.

        Returns:
            Path of the written artifact.

        Raises:
            InvalidParamError: If *files* is empty.
            ContainerWriteError: If names don't match, the base archive is
                unusable, or writing fails.  No file is left behind.
        """
        target = self.output_path(files)
        names = list(files)

        if expected_names is not None and set(names) != set(expected_names):
            missing = sorted(set(expected_names) - set(names))
            unexpected = sorted(set(names) - set(expected_names))
            raise ContainerWriteError(
                "File names do not match the registered data files "
                f"(missing: {missing}, unexpected: {unexpected})"
            )

        try:
            with zipfile.ZipFile(io.BytesIO(base)) as zf:
                existing = set(zf.namelist())
        except zipfile.BadZipFile as e:
            raise ContainerWriteError(f"Gateway container is not a valid ZIP archive: {e}") from e

        clashes = sorted(existing.intersection(names))
        if clashes:
            raise ContainerWriteError(f"Container already holds entries named {clashes}")

        _logger.debug("Assembling %s: base %d bytes, %d files", target, len(base), len(names))
        try:
            fd, tmp_path = tempfile.mkstemp(dir=target.parent, suffix=".tmp")
        except OSError as e:
            raise ContainerWriteError(f"Failed to write container {target}: {e}") from e
        tmp = Path(tmp_path)
        try:
            with os.fdopen(fd, "w+b") as fh:
                fh.write(base)
                fh.seek(0)
                with zipfile.ZipFile(fh, "a") as zf:
                    for name, path in files.items():
                        _append_file(zf, name, Path(path))
                fh.flush()
                os.fsync(fh.fileno())
            tmp.replace(target)
        except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            tmp.unlink(missing_ok=True)
            raise ContainerWriteError(f"Failed to write container {target}: {e}") from e
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

        _logger.info("Container written: %s (%d data files)", target, len(names))
        return target


def _append_file(zf: zipfile.ZipFile, name: str, path: Path) -> None:
    """Append *path* under exactly *name*, without arcname normalization."""
    st = path.stat()
    date_time = max(time.localtime(st.st_mtime)[:6], _ZIP_EPOCH)
    info = zipfile.ZipInfo(name, date_time=date_time)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    info.file_size = st.st_size
    with path.open("rb") as src, zf.open(info, "w") as dst:
        shutil.copyfileobj(src, dst, _COPY_BUFFER_SIZE)
