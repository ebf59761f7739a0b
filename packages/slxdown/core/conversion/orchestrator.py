"""Convert containers in place to a target release.

One job per container: unpack into a scratch tree, patch the metadata
documents that are present, repack over the original file, drop the
scratch tree. The version token is passed explicitly on every call; no
module-level state is shared between jobs.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path

from slxdown.core.archive.codec import (
    ArchiveError,
    ArchiveUnreadableError,
    pack_directory,
    unpack_archive,
)
from slxdown.core.config.models import CONTAINER_EXTENSIONS, METADATA_DOCUMENTS, VERSION_FIELDS
from slxdown.core.conversion.models import ConversionOutcome
from slxdown.core.conversion.scratch import scratch_dir_for, scratch_directory
from slxdown.core.metadata.patcher import PatchError, patch_metadata_tree
from slxdown.core.utils.logging import get_logger

logger = get_logger(__name__)


class ConversionError(Exception):
    """Raised when one container fails to convert.

    The underlying archive, patch or filesystem error is chained as
    ``__cause__``.
    """

    def __init__(self, input_path: Path, cause: Exception) -> None:
        super().__init__(f"{input_path}: {cause}")
        self.input_path = input_path
        self.cause = cause


class TraversalError(Exception):
    """Raised when a batch root or one of its directories cannot be listed."""


def _check_token(version_token: str) -> str:
    if not version_token or not version_token.strip():
        raise ValueError("version_token must be a non-empty string")
    return version_token


def _run_conversion(
    input_path: Path,
    version_token: str,
    documents: Iterable[str],
    field_names: Iterable[str],
) -> tuple[Path, list[str]]:
    scratch = scratch_dir_for(input_path)
    try:
        if not input_path.is_file():
            raise ArchiveUnreadableError(f"Container does not exist: {input_path}")
        with scratch_directory(scratch):
            unpack_archive(input_path, scratch)
            patched = patch_metadata_tree(scratch, version_token, documents, field_names)
            pack_directory(scratch, input_path)
    except (ArchiveError, PatchError, OSError) as e:
        raise ConversionError(input_path, e) from e

    log = get_logger(__name__, input_path=str(input_path))
    if patched:
        log.debug("Set %s in %s", version_token, ", ".join(patched))
    else:
        log.debug("No metadata documents changed")
    return input_path, patched


def convert_one(
    input_path: Path | str,
    version_token: str,
    documents: Iterable[str] = METADATA_DOCUMENTS,
    field_names: Iterable[str] = VERSION_FIELDS,
) -> Path:
    """Convert a single container in place.

    Args:
        input_path: Container to convert; it is overwritten with the result.
        version_token: Release identifier written into the metadata.
        documents: Metadata document paths relative to the archive root.
        field_names: Element local names that carry the release.

    Returns:
        Path of the converted container (same as ``input_path``).

    Raises:
        ConversionError: Wrapping the first unpack, patch or pack failure.
        ValueError: If ``version_token`` is empty.
    """
    _check_token(version_token)
    output_path, _ = _run_conversion(
        Path(input_path), version_token, tuple(documents), frozenset(field_names)
    )
    return output_path


def is_container(path: Path, extensions: Iterable[str] = CONTAINER_EXTENSIONS) -> bool:
    """Return True when ``path`` has a recognized container extension (any case)."""
    return path.suffix.lower() in {ext.lower() for ext in extensions}


def iter_containers(
    root_dir: Path | str, extensions: Iterable[str] = CONTAINER_EXTENSIONS
) -> Iterator[Path]:
    """Yield container files under ``root_dir``, depth-first in lexical order.

    Scratch directories left next to a container by an interrupted run are
    not descended into.

    Raises:
        TraversalError: If a directory cannot be listed.
    """
    exts = frozenset(ext.lower() for ext in extensions)

    def _walk(directory: Path) -> Iterator[Path]:
        try:
            children = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise TraversalError(f"Cannot read directory {directory}: {e}") from e

        scratch_names = {
            scratch_dir_for(child).name
            for child in children
            if is_container(child, exts) and child.is_file()
        }
        for child in children:
            if child.is_dir() and not child.is_symlink():
                if child.name in scratch_names:
                    logger.debug("Skipping scratch directory: %s", child)
                    continue
                yield from _walk(child)
            elif child.is_file() and is_container(child, exts):
                yield child

    root = Path(root_dir)
    if not root.is_dir():
        raise TraversalError(f"Not a directory: {root}")
    yield from _walk(root)


def iter_convert_tree(
    root_dir: Path | str,
    version_token: str,
    extensions: Iterable[str] = CONTAINER_EXTENSIONS,
    documents: Iterable[str] = METADATA_DOCUMENTS,
    field_names: Iterable[str] = VERSION_FIELDS,
) -> Iterator[ConversionOutcome]:
    """Convert containers under ``root_dir`` one at a time, yielding each outcome.

    Each container is converted only when the next outcome is requested, so
    callers can report progress as the batch runs. A failing container is
    recorded and traversal moves on to the next one.

    Raises:
        TraversalError: If the root or a subdirectory cannot be listed.
        ValueError: If ``version_token`` is empty.
    """
    _check_token(version_token)
    documents = tuple(documents)
    field_names = frozenset(field_names)

    for path in iter_containers(root_dir, extensions):
        logger.debug("Processing: %s", path)
        try:
            output_path, patched = _run_conversion(path, version_token, documents, field_names)
        except ConversionError as e:
            logger.debug("Error processing %s: %s", path, e.cause)
            yield ConversionOutcome(path=path, success=False, error=str(e.cause))
            continue
        logger.debug("Created: %s", output_path)
        yield ConversionOutcome(
            path=path,
            success=True,
            output_path=output_path,
            patched_documents=tuple(patched),
        )


def convert_tree(
    root_dir: Path | str,
    version_token: str,
    extensions: Iterable[str] = CONTAINER_EXTENSIONS,
    documents: Iterable[str] = METADATA_DOCUMENTS,
    field_names: Iterable[str] = VERSION_FIELDS,
) -> list[ConversionOutcome]:
    """Convert every container under ``root_dir``.

    Returns:
        One outcome per visited container, in visiting order.

    Raises:
        TraversalError: If the root or a subdirectory cannot be listed.
        ValueError: If ``version_token`` is empty.
    """
    _check_token(version_token)
    outcomes = list(
        iter_convert_tree(root_dir, version_token, extensions, documents, field_names)
    )
    logger.debug(
        "Converted %d of %d containers under %s",
        sum(1 for o in outcomes if o.success),
        len(outcomes),
        root_dir,
    )
    return outcomes
