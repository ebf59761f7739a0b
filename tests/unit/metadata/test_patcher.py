"""Unit tests for metadata version patching."""

from __future__ import annotations

from pathlib import Path

import pytest

from slxdown.core.config.models import METADATA_DOCUMENTS, VERSION_FIELDS
from slxdown.core.metadata.patcher import (
    MalformedXMLError,
    PatchIOError,
    patch_metadata_tree,
    patch_version_fields,
)
from slxdown.core.parsers.xml import XMLParser, local_name
from tests.conftest import CORE_PROPERTIES, MWCORE_PROPERTIES, MWCORE_RELEASE_INFO


def _texts(path: Path) -> dict[str, list[str | None]]:
    result: dict[str, list[str | None]] = {}
    for element in XMLParser().parse(path).iter_elements():
        result.setdefault(local_name(element), []).append(element.text)
    return result


def test_only_recognized_tags_change(tmp_path: Path) -> None:
    doc = tmp_path / "props.xml"
    doc.write_text(
        "<props>"
        "<version>A</version>"
        "<release>A</release>"
        "<matlabRelease>A</matlabRelease>"
        "<otherVersion>A</otherVersion>"
        "</props>",
        encoding="utf-8",
    )

    assert patch_version_fields(doc, VERSION_FIELDS, "B") is True

    texts = _texts(doc)
    assert texts["version"] == ["B"]
    assert texts["release"] == ["B"]
    assert texts["matlabRelease"] == ["B"]
    assert texts["otherVersion"] == ["A"]


def test_second_patch_with_same_value_is_a_no_op(tmp_path: Path) -> None:
    doc = tmp_path / "mwcorePropertiesReleaseInfo.xml"
    doc.write_bytes(MWCORE_RELEASE_INFO)

    assert patch_version_fields(doc, VERSION_FIELDS, "R2022b") is True
    after_first = doc.read_bytes()

    assert patch_version_fields(doc, VERSION_FIELDS, "R2022b") is False
    assert doc.read_bytes() == after_first


def test_unchanged_document_is_not_rewritten(tmp_path: Path) -> None:
    doc = tmp_path / "props.xml"
    doc.write_text("<props><release>R2023a</release></props>", encoding="utf-8")
    before = doc.stat().st_mtime_ns

    assert patch_version_fields(doc, VERSION_FIELDS, "R2023a") is False
    assert doc.stat().st_mtime_ns == before


def test_fields_matched_anywhere_in_the_tree(tmp_path: Path) -> None:
    doc = tmp_path / "nested.xml"
    doc.write_text(
        "<root><a><b><release>R2024b</release></b></a><release>R2024a</release></root>",
        encoding="utf-8",
    )

    patch_version_fields(doc, {"release"}, "R2022a")

    assert _texts(doc)["release"] == ["R2022a", "R2022a"]


def test_empty_element_receives_value(tmp_path: Path) -> None:
    doc = tmp_path / "props.xml"
    doc.write_text("<props><release/></props>", encoding="utf-8")

    assert patch_version_fields(doc, VERSION_FIELDS, "R2023b") is True
    assert _texts(doc)["release"] == ["R2023b"]


def test_namespaced_fields_keep_their_prefixes(tmp_path: Path) -> None:
    doc = tmp_path / "coreProperties.xml"
    doc.write_bytes(CORE_PROPERTIES)

    assert patch_version_fields(doc, VERSION_FIELDS, "R2022b") is True

    expected = CORE_PROPERTIES.replace(
        b"<cp:version>R2024b</cp:version>", b"<cp:version>R2022b</cp:version>"
    )
    assert doc.read_bytes() == expected


def test_default_namespace_document_is_patched(tmp_path: Path) -> None:
    doc = tmp_path / "mwcoreProperties.xml"
    doc.write_bytes(MWCORE_PROPERTIES)

    assert patch_version_fields(doc, VERSION_FIELDS, "R2023a") is True

    content = doc.read_bytes()
    assert b"<matlabRelease>R2023a</matlabRelease>" in content
    assert b'xmlns="http://schemas.mathworks.com/package/2012/coreProperties"' in content
    assert b"ns0:" not in content


def test_malformed_document_raises_and_is_left_alone(tmp_path: Path) -> None:
    doc = tmp_path / "broken.xml"
    doc.write_text("<props><release>R2024b</props>", encoding="utf-8")

    with pytest.raises(MalformedXMLError):
        patch_version_fields(doc, VERSION_FIELDS, "R2022a")

    assert doc.read_text(encoding="utf-8") == "<props><release>R2024b</props>"


def test_unreadable_document_raises_patch_io_error(tmp_path: Path) -> None:
    directory = tmp_path / "not_a_file.xml"
    directory.mkdir()

    with pytest.raises(PatchIOError):
        patch_version_fields(directory, VERSION_FIELDS, "R2022a")


def test_patch_metadata_tree_skips_absent_documents(tmp_path: Path) -> None:
    metadata = tmp_path / "metadata"
    metadata.mkdir()
    (metadata / "coreProperties.xml").write_bytes(CORE_PROPERTIES)

    patched = patch_metadata_tree(tmp_path, "R2022a")

    assert patched == ["metadata/coreProperties.xml"]


def test_patch_metadata_tree_reports_all_rewritten_documents(tmp_path: Path) -> None:
    metadata = tmp_path / "metadata"
    metadata.mkdir()
    (metadata / "mwcoreProperties.xml").write_bytes(MWCORE_PROPERTIES)
    (metadata / "mwcorePropertiesReleaseInfo.xml").write_bytes(MWCORE_RELEASE_INFO)
    (metadata / "coreProperties.xml").write_bytes(CORE_PROPERTIES)

    patched = patch_metadata_tree(tmp_path, "R2023b")

    assert patched == list(METADATA_DOCUMENTS)
    assert patch_metadata_tree(tmp_path, "R2023b") == []
