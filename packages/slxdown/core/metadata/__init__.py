"""Metadata document patching."""

from slxdown.core.metadata.patcher import (
    MalformedXMLError,
    PatchError,
    PatchIOError,
    patch_metadata_tree,
    patch_version_fields,
)

__all__ = [
    "MalformedXMLError",
    "PatchError",
    "PatchIOError",
    "patch_metadata_tree",
    "patch_version_fields",
]
