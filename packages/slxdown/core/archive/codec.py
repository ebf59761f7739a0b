"""Unpack and repack ZIP-based model containers.

The consuming application is strict about how entries are framed:
entry names use forward slashes, entries are deflated, and general
purpose flag bit 11 (UTF-8 name) must be clear on every entry, both in
the local file header and in the central directory. Python's
``zipfile`` sets that bit for any non-ASCII name, so packing goes
through ``LegacyNameZipInfo`` which always writes the UTF-8 name bytes
with the bit cleared.
"""

from __future__ import annotations

from collections.abc import Iterator
import os
from pathlib import Path, PurePosixPath
import shutil
from tempfile import NamedTemporaryFile
from zipfile import ZIP_DEFLATED, BadZipFile, ZipFile, ZipInfo
import zlib

from pydantic import BaseModel, ConfigDict

from slxdown.core.utils.logging import get_logger

logger = get_logger(__name__)

UTF8_NAME_FLAG = 0x800
# MS-DOS host system, as written by the application itself.
CREATE_SYSTEM_FAT = 0
_COPY_CHUNK = 1024 * 1024


class ArchiveError(Exception):
    """Base class for container codec failures."""


class ArchiveUnreadableError(ArchiveError):
    """Raised when the input is not a readable ZIP container."""


class ArchiveIOError(ArchiveError):
    """Raised on filesystem errors while materializing or collecting entries."""


class ArchiveWriteError(ArchiveError):
    """Raised when the output container cannot be finalized."""


class ContainerEntry(BaseModel):
    """One stored file or directory record, as read back from a container.

    ``raw_name`` holds the stored name bytes; ``name`` is their UTF-8
    decoding, with undecodable bytes replaced.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    raw_name: bytes
    data: bytes
    date_time: tuple[int, int, int, int, int, int]
    compress_type: int
    flag_bits: int

    @property
    def is_dir(self) -> bool:
        return self.name.endswith("/")

    @property
    def has_utf8_flag(self) -> bool:
        return bool(self.flag_bits & UTF8_NAME_FLAG)


class LegacyNameZipInfo(ZipInfo):
    """ZipInfo that writes names as UTF-8 bytes without setting flag bit 11.

    Names carrying surrogate escapes (undecodable bytes read from a legacy
    entry name) are written back as the original bytes.
    """

    __slots__ = ()

    # Private zipfile hook, same signature on CPython 3.11 through 3.13.
    def _encodeFilenameFlags(self) -> tuple[bytes, int]:
        return (
            self.filename.encode("utf-8", "surrogateescape"),
            self.flag_bits & ~UTF8_NAME_FLAG,
        )


def _raw_name(info: ZipInfo) -> bytes:
    """Return the entry name bytes as stored in the central directory."""
    if info.flag_bits & UTF8_NAME_FLAG:
        return info.filename.encode("utf-8")
    # zipfile decodes unflagged names as cp437, which maps every byte.
    try:
        return info.filename.encode("cp437")
    except UnicodeEncodeError:
        return info.filename.encode("utf-8")


def _entry_name(info: ZipInfo) -> str:
    """Return the entry name, decoding unflagged names as UTF-8.

    The application stores UTF-8 bytes without the flag. Bytes that are not
    valid UTF-8 are kept as surrogate escapes, so the same bytes land on
    disk and go back into the repacked container.
    """
    if info.flag_bits & UTF8_NAME_FLAG:
        return info.filename
    return _raw_name(info).decode("utf-8", "surrogateescape")


def _entry_target(dest: Path, name: str) -> Path | None:
    """Map an entry name to a path under ``dest``.

    Returns None for names that denote the archive root itself.

    Raises:
        ArchiveIOError: If the entry would land outside ``dest``.
    """
    posix = PurePosixPath(name)
    parts = [part for part in posix.parts if part not in ("", ".")]
    # Absolute paths, parent references and drive-qualified names
    if posix.is_absolute() or ".." in parts or (parts and ":" in parts[0]):
        raise ArchiveIOError(f"Unsafe entry path in container: {name!r}")
    if not parts:
        return None
    return dest.joinpath(*parts)


def read_container(container_path: Path | str) -> list[ContainerEntry]:
    """Read every entry of a container into memory, in central directory order.

    Raises:
        ArchiveUnreadableError: If the file is not a readable ZIP container.
    """
    path = Path(container_path)
    try:
        with ZipFile(path) as archive:
            return [
                ContainerEntry(
                    name=_raw_name(info).decode("utf-8", "replace"),
                    raw_name=_raw_name(info),
                    data=b"" if info.is_dir() else archive.read(info),
                    date_time=info.date_time,
                    compress_type=info.compress_type,
                    flag_bits=info.flag_bits,
                )
                for info in archive.infolist()
            ]
    except (BadZipFile, zlib.error, EOFError, NotImplementedError, OSError) as e:
        raise ArchiveUnreadableError(f"Cannot read container {path}: {e}") from e


def unpack_archive(container_path: Path | str, dest_dir: Path | str) -> None:
    """Materialize every entry of a container under ``dest_dir``.

    Directory entries become directories; file entries are written with
    their parent directories created as needed. Entries are processed in
    container order.

    Args:
        container_path: Existing container file.
        dest_dir: Destination directory, created if absent.

    Raises:
        ArchiveUnreadableError: If the input is not a valid container.
        ArchiveIOError: On filesystem errors or entries escaping ``dest_dir``.
    """
    src = Path(container_path)
    dest = Path(dest_dir)

    try:
        archive = ZipFile(src)
    except (BadZipFile, OSError) as e:
        raise ArchiveUnreadableError(f"Not a valid container: {src}: {e}") from e

    with archive:
        try:
            dest.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArchiveIOError(f"Cannot create {dest}: {e}") from e

        entries = archive.infolist()
        for info in entries:
            name = _entry_name(info)
            target = _entry_target(dest, name)
            if target is None:
                continue
            try:
                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(info) as source, target.open("wb") as out:
                    shutil.copyfileobj(source, out, _COPY_CHUNK)
            except (BadZipFile, zlib.error, EOFError, NotImplementedError) as e:
                raise ArchiveUnreadableError(f"Corrupt entry {name!r} in {src}: {e}") from e
            except OSError as e:
                raise ArchiveIOError(f"Cannot extract {name!r} to {target}: {e}") from e

    logger.debug("Unpacked %d entries from %s into %s", len(entries), src, dest)


def iter_source_files(src_dir: Path | str) -> Iterator[tuple[Path, str]]:
    """Yield ``(file_path, entry_name)`` for every regular file under ``src_dir``.

    Depth-first, siblings in lexical order. Entry names are relative to
    ``src_dir`` with forward slashes. Symlinked directories are not followed.
    """
    root = Path(src_dir)

    def _walk(directory: Path) -> Iterator[tuple[Path, str]]:
        for child in sorted(directory.iterdir(), key=lambda p: p.name):
            if child.is_dir() and not child.is_symlink():
                yield from _walk(child)
            elif child.is_file():
                yield child, child.relative_to(root).as_posix()

    yield from _walk(root)


def _make_entry_info(file_path: Path, entry_name: str) -> LegacyNameZipInfo:
    zinfo = LegacyNameZipInfo.from_file(file_path, entry_name, strict_timestamps=False)
    zinfo.compress_type = ZIP_DEFLATED
    zinfo.create_system = CREATE_SYSTEM_FAT
    zinfo.external_attr = 0
    zinfo.flag_bits &= ~UTF8_NAME_FLAG
    return zinfo


def _write_entries(archive: ZipFile, src: Path) -> int:
    count = 0
    for file_path, entry_name in iter_source_files(src):
        zinfo = _make_entry_info(file_path, entry_name)
        with file_path.open("rb") as source, archive.open(zinfo, "w") as target:
            shutil.copyfileobj(source, target, _COPY_CHUNK)
        logger.debug("Packed %s (%d bytes)", entry_name, zinfo.file_size)
        count += 1
    return count


def _reserve_temp_path(dest: Path) -> Path:
    tmp = NamedTemporaryFile(
        dir=dest.parent,
        prefix=f".{dest.name}.",
        suffix=".partial",
        delete=False,
    )
    tmp.close()
    return Path(tmp.name)


def pack_directory(src_dir: Path | str, container_path: Path | str) -> None:
    """Write every regular file under ``src_dir`` into a new container.

    Entries are deflated, named relative to ``src_dir`` with forward
    slashes, carry the source file's modification time, and never carry
    the UTF-8 name flag. Directories are not written as entries.

    The container is assembled in a temporary sibling file and moved over
    ``container_path`` only once complete, so a failure never leaves a
    truncated file behind and never destroys an existing container.
    A symlinked ``container_path`` keeps its link; the file it points to
    is replaced.

    Args:
        src_dir: Directory to pack.
        container_path: Output container path (overwritten on success).

    Raises:
        ArchiveIOError: If a source file cannot be read or written out.
        ArchiveWriteError: If the output cannot be created or finalized.
    """
    src = Path(src_dir)
    dest = Path(container_path).resolve()

    if not src.is_dir():
        raise ArchiveIOError(f"Source directory does not exist: {src}")

    try:
        tmp_path = _reserve_temp_path(dest)
    except OSError as e:
        raise ArchiveWriteError(f"Cannot create output next to {dest}: {e}") from e

    try:
        with ZipFile(tmp_path, "w", compression=ZIP_DEFLATED) as archive:
            try:
                count = _write_entries(archive, src)
            except OSError as e:
                raise ArchiveIOError(f"Cannot pack {src}: {e}") from e
        if dest.exists():
            shutil.copymode(dest, tmp_path)
        else:
            os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, dest)
    except ArchiveError:
        tmp_path.unlink(missing_ok=True)
        raise
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise ArchiveWriteError(f"Cannot finalize {dest}: {e}") from e

    logger.debug("Packed %d entries from %s into %s", count, src, dest)
