"""Shared pytest fixtures for slxdown tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from zipfile import ZIP_DEFLATED, ZipFile

import pytest

# ============================================================================
# Metadata documents, shaped like the ones the application writes
# ============================================================================

MWCORE_PROPERTIES = b"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<mwcoreProperties xmlns="http://schemas.mathworks.com/package/2012/coreProperties">
  <contentType>application/vnd.mathworks.simulink.model</contentType>
  <contentTypeFriendlyName>Simulink Model</contentTypeFriendlyName>
  <matlabRelease>R2024b</matlabRelease>
</mwcoreProperties>
"""

MWCORE_RELEASE_INFO = b"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<!--Version information for MathWorks R2024b Release-->
<MathWorks_version_info>
  <version>24.2.0.2712019</version>
  <release>R2024b</release>
  <description>Update 1</description>
  <date>Sep 05 2024</date>
</MathWorks_version_info>
"""

CORE_PROPERTIES = b"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<cp:coreProperties xmlns:cp="http://schemas.openxmlformats.org/package/2006/metadata/core-properties" xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:dcterms="http://purl.org/dc/terms/" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">
  <cp:category>model</cp:category>
  <dcterms:created xsi:type="dcterms:W3CDTF">2024-10-01T12:00:00Z</dcterms:created>
  <dc:creator>engineer</dc:creator>
  <cp:version>R2024b</cp:version>
</cp:coreProperties>
"""

MODEL_ENTRIES: dict[str, bytes] = {
    "[Content_Types].xml": b'<?xml version="1.0" encoding="UTF-8"?><Types/>',
    "_rels/.rels": b'<?xml version="1.0" encoding="UTF-8"?><Relationships/>',
    "metadata/coreProperties.xml": CORE_PROPERTIES,
    "metadata/mwcoreProperties.xml": MWCORE_PROPERTIES,
    "metadata/mwcorePropertiesReleaseInfo.xml": MWCORE_RELEASE_INFO,
    "simulink/blockdiagram.xml": b"<ModelInformation><Model Name=\"plant\"/></ModelInformation>",
    "simulink/systems/system_root.xml": b"<System><Block BlockType=\"Gain\"/></System>",
}

# ============================================================================
# Archive Fixtures
# ============================================================================


def write_zip(path: Path, members: dict[str, bytes]) -> Path:
    """Write a deflated ZIP with the given members, in insertion order."""
    with ZipFile(path, "w", compression=ZIP_DEFLATED) as archive:
        for name, data in members.items():
            archive.writestr(name, data)
    return path


@pytest.fixture
def make_zip() -> Callable[[Path, dict[str, bytes]], Path]:
    """Return a helper that writes a ZIP archive from a name -> bytes mapping."""
    return write_zip


@pytest.fixture
def model_entries() -> dict[str, bytes]:
    """Entries of a typical model container, metadata included."""
    return dict(MODEL_ENTRIES)


@pytest.fixture
def model_container(tmp_path: Path, model_entries: dict[str, bytes]) -> Path:
    """A .slx container with all three metadata documents at R2024b."""
    return write_zip(tmp_path / "plant.slx", model_entries)


@pytest.fixture
def bare_container(tmp_path: Path) -> Path:
    """A .slx container without any metadata documents."""
    members = {
        name: data for name, data in MODEL_ENTRIES.items() if not name.startswith("metadata/")
    }
    return write_zip(tmp_path / "bare.slx", members)
