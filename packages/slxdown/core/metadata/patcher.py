"""Rewrite release identifiers inside container metadata documents.

Fields are matched by element local name anywhere in the document rather
than by a fixed path. The documents this runs against move these fields
around between application releases; the accepted cost is that a
same-named element in an unrelated subtree is rewritten too.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from slxdown.core.config.models import METADATA_DOCUMENTS, VERSION_FIELDS
from slxdown.core.parsers.xml import XMLParser, local_name
from slxdown.core.utils.logging import get_logger

logger = get_logger(__name__)


class PatchError(Exception):
    """Base class for metadata patch failures."""


class MalformedXMLError(PatchError):
    """Raised when a metadata document cannot be parsed."""


class PatchIOError(PatchError):
    """Raised when a metadata document cannot be read or written."""


def patch_version_fields(
    doc_path: Path | str,
    field_names: Iterable[str],
    new_value: str,
) -> bool:
    """Set the text of every element named in ``field_names`` to ``new_value``.

    The document is only rewritten when at least one element's text
    actually changed, so a second call with the same value is a no-op.

    Args:
        doc_path: XML document to patch in place.
        field_names: Element local names treated as version-bearing.
        new_value: Replacement text.

    Returns:
        True if the document was rewritten.

    Raises:
        MalformedXMLError: If the document is not well-formed XML.
        PatchIOError: If the document cannot be read or written.
    """
    path = Path(doc_path)
    names = frozenset(field_names)
    parser = XMLParser()

    try:
        document = parser.parse(path)
    except ValueError as e:
        raise MalformedXMLError(str(e)) from e
    except OSError as e:
        raise PatchIOError(f"Cannot read {path}: {e}") from e

    modified = False
    for element in document.iter_elements():
        if local_name(element) not in names:
            continue
        # Missing text compares as empty, like an empty element.
        if (element.text or "") != new_value:
            logger.debug(
                "%s: <%s> %r -> %r", path.name, local_name(element), element.text, new_value
            )
            element.text = new_value
            modified = True

    if not modified:
        logger.debug("%s already at %s", path, new_value)
        return False

    try:
        parser.write(document)
    except OSError as e:
        raise PatchIOError(f"Cannot write {path}: {e}") from e
    return True


def patch_metadata_tree(
    root_dir: Path | str,
    version_token: str,
    documents: Iterable[str] = METADATA_DOCUMENTS,
    field_names: Iterable[str] = VERSION_FIELDS,
) -> list[str]:
    """Patch each known metadata document present under ``root_dir``.

    Absent documents are skipped.

    Returns:
        Relative paths (forward slashes) of the documents that were rewritten.

    Raises:
        PatchError: On the first document that fails to patch.
    """
    root = Path(root_dir)
    names = frozenset(field_names)
    patched: list[str] = []

    for rel_path in documents:
        doc_path = root.joinpath(*rel_path.split("/"))
        if not doc_path.is_file():
            logger.debug("Metadata document not present: %s", rel_path)
            continue
        if patch_version_fields(doc_path, names, version_token):
            patched.append(rel_path)

    return patched
