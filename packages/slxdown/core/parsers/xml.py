"""XML parsing and round-trip writing with error handling.

Wraps lxml so that a document can be read, edited in place, and written
back without disturbing anything the caller did not touch. Bytes outside
the root element are written back verbatim; namespace prefixes and
attribute order inside it are kept by lxml.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
import re

from lxml import etree as ET

from slxdown.core.utils.logging import get_logger

logger = get_logger(__name__)

_BOM = b"\xef\xbb\xbf"
_DOCTYPE_RE = re.compile(rb"<!DOCTYPE\b")


def _skip_doctype(raw: bytes, pos: int) -> int:
    """Return the offset just past a DOCTYPE declaration starting at ``pos``."""
    depth = 0
    quote: int | None = None
    for i in range(pos, len(raw)):
        ch = raw[i]
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in b"\"'":
            quote = ch
        elif ch == ord("["):
            depth += 1
        elif ch == ord("]"):
            depth -= 1
        elif ch == ord(">") and depth == 0:
            return i + 1
    return len(raw)


def _root_start(raw: bytes) -> int:
    """Return the offset of the root start tag, past BOM, declaration, PIs, comments and DOCTYPE."""
    pos = len(_BOM) if raw.startswith(_BOM) else 0
    while pos < len(raw):
        if raw[pos : pos + 1].isspace():
            pos += 1
        elif raw.startswith(b"<?", pos):
            pos = raw.index(b"?>", pos) + 2
        elif raw.startswith(b"<!--", pos):
            pos = raw.index(b"-->", pos) + 3
        elif _DOCTYPE_RE.match(raw, pos):
            pos = _skip_doctype(raw, pos)
        else:
            return pos
    return pos


def _root_end(raw: bytes) -> int:
    """Return the offset just past the root end tag, before trailing comments, PIs and whitespace."""
    end = len(raw.rstrip())
    while True:
        if raw.endswith(b"-->", 0, end):
            end = len(raw[: raw.rindex(b"<!--", 0, end)].rstrip())
        elif raw.endswith(b"?>", 0, end):
            end = len(raw[: raw.rindex(b"<?", 0, end)].rstrip())
        else:
            return end


@dataclass
class XMLDocument:
    """A parsed document plus the raw bytes needed to write it back unchanged.

    Only the root element is re-serialized on write; everything before and
    after it is kept as the original bytes.

    Attributes:
        path: File the document was read from.
        tree: Parsed lxml element tree.
        prolog: Raw bytes preceding the root element.
        epilog: Raw bytes following the root element.
    """

    path: Path
    tree: ET._ElementTree
    prolog: bytes = b""
    epilog: bytes = b""

    @property
    def root(self) -> ET._Element:
        return self.tree.getroot()

    @property
    def encoding(self) -> str:
        return self.tree.docinfo.encoding or "UTF-8"

    def iter_elements(self) -> Iterator[ET._Element]:
        """Yield every element in document order, skipping comments and PIs."""
        for node in self.root.iter():
            if isinstance(node.tag, str):
                yield node

    def to_bytes(self) -> bytes:
        body = ET.tostring(
            self.root, encoding=self.encoding, xml_declaration=False, with_tail=False
        )
        return self.prolog + body + self.epilog


def local_name(element: ET._Element) -> str:
    """Return the element's tag without its namespace URI."""
    return ET.QName(element).localname


class XMLParser:
    """XML parser with error handling.

    Wraps lxml with:
    - File existence validation
    - Clear error messages for malformed XML
    - Entity resolution and network access disabled
    - Byte-faithful write-back of untouched document parts

    Example:
        >>> parser = XMLParser()
        >>> doc = parser.parse("metadata/coreProperties.xml")
        >>> for element in doc.iter_elements():
        ...     print(local_name(element))
        >>> parser.write(doc)
    """

    def _make_parser(self) -> ET.XMLParser:
        return ET.XMLParser(
            remove_blank_text=False,
            remove_comments=False,
            remove_pis=False,
            resolve_entities=False,
            no_network=True,
        )

    def parse(self, file_path: Path | str) -> XMLDocument:
        """Parse an XML file.

        Args:
            file_path: Path to XML file

        Returns:
            Parsed XMLDocument

        Raises:
            FileNotFoundError: If file does not exist
            OSError: If the file cannot be read
            ValueError: If XML is malformed
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"XML file does not exist: {path}")

        raw = path.read_bytes()
        logger.debug("Parsing XML file: %s", path)
        return self._parse_bytes(raw, path)

    def parse_string(self, xml: str | bytes, path: Path | str = "<string>") -> XMLDocument:
        """Parse XML from a string or bytes.

        Raises:
            ValueError: If XML is malformed
        """
        raw = xml.encode("utf-8") if isinstance(xml, str) else xml
        return self._parse_bytes(raw, Path(path))

    def _parse_bytes(self, raw: bytes, path: Path) -> XMLDocument:
        try:
            root = ET.fromstring(raw, parser=self._make_parser())
        except ET.XMLSyntaxError as e:
            raise ValueError(f"Malformed XML in {path}: {e}") from e

        return XMLDocument(
            path=path,
            tree=root.getroottree(),
            prolog=raw[: _root_start(raw)],
            epilog=raw[_root_end(raw) :],
        )

    def write(self, document: XMLDocument, file_path: Path | str | None = None) -> None:
        """Serialize a document back to disk.

        Args:
            document: Document to write
            file_path: Destination; defaults to the path it was parsed from

        Raises:
            OSError: If the file cannot be written
        """
        path = Path(file_path) if file_path is not None else document.path
        path.write_bytes(document.to_bytes())
        logger.debug("Wrote XML file: %s", path)
