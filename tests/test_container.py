"""Tests for sigaclient.hashcode.container -- inspection and assembly."""

from __future__ import annotations

import os
import zipfile
from unittest.mock import patch

import pytest

from sigaclient.errors import ContainerWriteError, InvalidParamError
from sigaclient.hashcode.container import ContainerAssembler, HashcodeContainer, is_data_entry
from sigaclient.hashcode.digest import DigestFile
from sigaclient.hashcode.manifest import build_hashcodes_xml

from .conftest import hashcode_container_bytes, make_zip

MIMETYPE = b"application/vnd.etsi.asic-e+zip"


@pytest.fixture
def originals(tmp_path):
    a = tmp_path / "a.txt"
    b = tmp_path / "b.pdf"
    a.write_bytes(b"alpha")
    b.write_bytes(b"%PDF-1.7 beta")
    return {"a.txt": a, "b.pdf": b}


def _full_container() -> bytes:
    return make_zip({
        "mimetype": MIMETYPE,
        "META-INF/manifest.xml": b"<manifest/>",
        "META-INF/signatures0.xml": b"<signature/>",
        "a.txt": b"alpha",
        "docs/b.pdf": b"beta",
    })


def test_is_data_entry():
    assert is_data_entry("a.txt")
    assert is_data_entry("docs/b.pdf")
    assert not is_data_entry("mimetype")
    assert not is_data_entry("META-INF/signatures0.xml")
    assert not is_data_entry("docs/")


# ── HashcodeContainer ─────────────────────────────────────────────────


def test_container_rejects_non_zip():
    with pytest.raises(InvalidParamError, match="Not a ZIP"):
        HashcodeContainer(b"not a zip")


def test_container_from_path(tmp_path):
    p = tmp_path / "c.asice"
    p.write_bytes(_full_container())
    assert HashcodeContainer(p).data_file_names() == ["a.txt", "docs/b.pdf"]


def test_container_data_files_digests():
    files = HashcodeContainer(_full_container()).data_files()
    assert files == [
        DigestFile.from_bytes("a.txt", 5, b"alpha"),
        DigestFile.from_bytes("docs/b.pdf", 4, b"beta"),
    ]


def test_is_hashcode_container():
    assert HashcodeContainer(hashcode_container_bytes()).is_hashcode_container()
    assert not HashcodeContainer(_full_container()).is_hashcode_container()


def test_manifest_entries_missing():
    with pytest.raises(InvalidParamError, match="hashcodes-sha256"):
        HashcodeContainer(_full_container()).manifest_entries()


def test_container_without_files():
    stripped = HashcodeContainer(HashcodeContainer(_full_container()).container_without_files())
    assert stripped.data_file_names() == []
    assert "META-INF/signatures0.xml" in stripped.entry_names()


def test_to_hashcode_container():
    source = HashcodeContainer(_full_container())
    converted = HashcodeContainer(source.to_hashcode_container())

    assert converted.is_hashcode_container()
    assert converted.data_file_names() == []
    assert "META-INF/signatures0.xml" in converted.entry_names()
    entries = converted.manifest_entries(512)
    assert [(e.full_path, e.size) for e in entries] == [("a.txt", 5), ("docs/b.pdf", 4)]
    assert entries[0].hash == DigestFile.from_bytes("a.txt", 5, b"alpha").sha512


def test_to_hashcode_container_already_hashcode():
    data = hashcode_container_bytes()
    assert HashcodeContainer(data).to_hashcode_container() == data


def test_to_regular_container(originals):
    files = [DigestFile.from_path(p, name) for name, p in originals.items()]
    hashcode = make_zip({
        "mimetype": MIMETYPE,
        "META-INF/manifest.xml": b"<manifest/>",
        "META-INF/hashcodes-sha256.xml": build_hashcodes_xml(files, 256),
        "META-INF/hashcodes-sha512.xml": build_hashcodes_xml(files, 512),
        "META-INF/signatures0.xml": b"<signature/>",
    })

    regular = HashcodeContainer(HashcodeContainer(hashcode).to_regular_container(originals))

    assert not regular.is_hashcode_container()
    assert regular.entry_names() == [
        "mimetype",
        "META-INF/manifest.xml",
        "META-INF/signatures0.xml",
        "a.txt",
        "b.pdf",
    ]
    assert {f.name: f.sha256 for f in regular.data_files()} == {f.name: f.sha256 for f in files}


def test_to_regular_container_round_trips_hashcode_form(originals):
    files = [DigestFile.from_path(p, name) for name, p in originals.items()]
    hashcode = make_zip({
        "mimetype": MIMETYPE,
        "META-INF/hashcodes-sha256.xml": build_hashcodes_xml(files, 256),
        "META-INF/hashcodes-sha512.xml": build_hashcodes_xml(files, 512),
    })
    regular = HashcodeContainer(hashcode).to_regular_container(originals)
    back = HashcodeContainer(HashcodeContainer(regular).to_hashcode_container())
    assert back.manifest_entries(512) == HashcodeContainer(hashcode).manifest_entries(512)


def test_to_regular_container_name_mismatch(originals):
    files = [DigestFile.from_path(originals["a.txt"], "a.txt")]
    hashcode = make_zip({
        "mimetype": MIMETYPE,
        "META-INF/hashcodes-sha256.xml": build_hashcodes_xml(files, 256),
    })
    with pytest.raises(InvalidParamError, match="do not match the manifest"):
        HashcodeContainer(hashcode).to_regular_container(originals)


def test_to_regular_container_requires_hashcode_form(originals):
    with pytest.raises(InvalidParamError, match="hashcodes-sha256"):
        HashcodeContainer(_full_container()).to_regular_container(originals)


def test_extract_data_files(tmp_path):
    out = tmp_path / "out"
    out.mkdir()
    written = HashcodeContainer(_full_container()).extract_data_files(out)
    assert [p.relative_to(out.resolve()).as_posix() for p in written] == ["a.txt", "docs/b.pdf"]
    assert (out / "docs" / "b.pdf").read_bytes() == b"beta"


def test_extract_refuses_path_traversal(tmp_path):
    evil = make_zip({"mimetype": MIMETYPE, "../escape.txt": b"x"})
    out = tmp_path / "out"
    out.mkdir()
    with pytest.raises(InvalidParamError, match="outside"):
        HashcodeContainer(evil).extract_data_files(out)
    assert not (tmp_path / "escape.txt").exists()


def test_extract_missing_directory(tmp_path):
    with pytest.raises(InvalidParamError, match="does not exist"):
        HashcodeContainer(_full_container()).extract_data_files(tmp_path / "missing")


# ── ContainerAssembler ────────────────────────────────────────────────


def test_output_path_next_to_first_file(originals, tmp_path):
    assert ContainerAssembler("c1").output_path(originals) == tmp_path / "c1.asice"
    assert ContainerAssembler("c1", ".bdoc").output_path(originals) == tmp_path / "c1.bdoc"


def test_assembler_requires_container_id():
    with pytest.raises(InvalidParamError):
        ContainerAssembler("")


def test_assemble_appends_files(originals, tmp_path):
    base = hashcode_container_bytes()
    path = ContainerAssembler("c1").assemble(base, originals, {"a.txt", "b.pdf"})

    assert path == tmp_path / "c1.asice"
    with zipfile.ZipFile(path) as zf:
        names = zf.namelist()
        assert names[0] == "mimetype"
        assert zf.read("a.txt") == b"alpha"
        assert zf.read("b.pdf") == b"%PDF-1.7 beta"
        assert zf.read("META-INF/signatures0.xml") == b"<signature/>"
        assert zf.testzip() is None


def test_assemble_keeps_base_entries_byte_identical(originals):
    base = hashcode_container_bytes()
    path = ContainerAssembler("c1").assemble(base, originals)
    with zipfile.ZipFile(path) as zf:
        local_headers_end = min(zf.getinfo(n).header_offset for n in originals)
    assert path.read_bytes()[:local_headers_end] == base[:local_headers_end]


def test_assemble_name_mismatch_writes_nothing(originals, tmp_path):
    with pytest.raises(ContainerWriteError, match=r"missing: \['c.txt'\]"):
        ContainerAssembler("c1").assemble(
            hashcode_container_bytes(), originals, {"a.txt", "b.pdf", "c.txt"}
        )
    assert not (tmp_path / "c1.asice").exists()
    assert list(tmp_path.glob("*.tmp")) == []


def test_assemble_rejects_clashing_entry(originals):
    base = make_zip({"mimetype": MIMETYPE, "a.txt": b"old"})
    with pytest.raises(ContainerWriteError, match="already holds"):
        ContainerAssembler("c1").assemble(base, originals)


def test_assemble_bad_base(originals):
    with pytest.raises(ContainerWriteError, match="not a valid ZIP"):
        ContainerAssembler("c1").assemble(b"garbage", originals)


def test_assemble_missing_original_cleans_up(originals, tmp_path):
    originals["b.pdf"].unlink()
    with pytest.raises(ContainerWriteError, match="Failed to write"):
        ContainerAssembler("c1").assemble(hashcode_container_bytes(), originals)
    assert not (tmp_path / "c1.asice").exists()
    assert list(tmp_path.glob("*.tmp")) == []


def test_assemble_missing_target_directory(tmp_path):
    gone = tmp_path / "gone" / "a.txt"
    with pytest.raises(ContainerWriteError, match="Failed to write"):
        ContainerAssembler("c1").assemble(hashcode_container_bytes(), {"a.txt": gone})
    assert not (tmp_path / "gone").exists()


def test_assemble_fsync_failure_cleans_up(originals, tmp_path):
    with (
        patch("sigaclient.hashcode.container.os.fsync", side_effect=OSError("disk full")),
        pytest.raises(ContainerWriteError, match="disk full"),
    ):
        ContainerAssembler("c1").assemble(hashcode_container_bytes(), originals)
    assert not (tmp_path / "c1.asice").exists()
    assert list(tmp_path.glob("*.tmp")) == []


def test_assemble_preserves_unicode_names(tmp_path):
    doc = tmp_path / "tõend.txt"
    doc.write_bytes(b"sisu")
    path = ContainerAssembler("c2").assemble(hashcode_container_bytes(), {"tõend.txt": doc})
    with zipfile.ZipFile(path) as zf:
        assert zf.read("tõend.txt") == b"sisu"


@pytest.mark.skipif(os.name == "nt", reason="mtime before 1980 is not portable")
def test_assemble_clamps_old_timestamps(originals):
    os.utime(originals["a.txt"], (0, 0))
    path = ContainerAssembler("c1").assemble(hashcode_container_bytes(), originals)
    with zipfile.ZipFile(path) as zf:
        assert zf.getinfo("a.txt").date_time == (1980, 1, 1, 0, 0, 0)


def test_assembled_manifest_matches_originals(originals):
    files = [DigestFile.from_path(p, name) for name, p in originals.items()]
    base = make_zip({
        "mimetype": MIMETYPE,
        "META-INF/hashcodes-sha256.xml": build_hashcodes_xml(files, 256),
        "META-INF/hashcodes-sha512.xml": build_hashcodes_xml(files, 512),
    })
    path = ContainerAssembler("c3").assemble(base, originals)
    assembled = HashcodeContainer(path)
    assert {f.name: f.sha256 for f in assembled.data_files()} == {
        e.full_path: e.hash for e in assembled.manifest_entries()
    }
