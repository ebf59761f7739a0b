"""Scratch tree lifecycle for one conversion job."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
import shutil

from slxdown.core.utils.logging import get_logger

logger = get_logger(__name__)

SCRATCH_SUFFIX = "_unzipped"


def scratch_dir_for(input_path: Path | str) -> Path:
    """Return the scratch directory used when converting ``input_path``.

    The extension is part of the name, so ``model.slx`` and ``model.sldd``
    in the same directory get separate scratch trees.

    Example:
        >>> scratch_dir_for("models/plant.slx")
        PosixPath('models/plant_slx_unzipped')
    """
    path = Path(input_path)
    ext = path.suffix.lstrip(".") or "container"
    return path.parent / f"{path.stem}_{ext}{SCRATCH_SUFFIX}"


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


@contextmanager
def scratch_directory(path: Path | str) -> Iterator[Path]:
    """Create a fresh scratch directory and remove it on every exit path.

    Leftovers from an earlier interrupted run at the same location are
    deleted first.

    Raises:
        OSError: If stale leftovers cannot be removed or the directory
            cannot be created.
    """
    scratch = Path(path)
    if scratch.exists() or scratch.is_symlink():
        logger.debug("Removing stale scratch directory: %s", scratch)
        _remove(scratch)
    scratch.mkdir(parents=True)

    try:
        yield scratch
    finally:
        try:
            shutil.rmtree(scratch)
        except OSError as e:
            # Left for the next run to clear as stale debris.
            logger.warning("Could not remove scratch directory %s: %s", scratch, e)
