"""Container (ZIP) codec."""

from slxdown.core.archive.codec import (
    UTF8_NAME_FLAG,
    ArchiveError,
    ArchiveIOError,
    ArchiveUnreadableError,
    ArchiveWriteError,
    ContainerEntry,
    LegacyNameZipInfo,
    iter_source_files,
    pack_directory,
    read_container,
    unpack_archive,
)

__all__ = [
    "UTF8_NAME_FLAG",
    "ArchiveError",
    "ArchiveIOError",
    "ArchiveUnreadableError",
    "ArchiveWriteError",
    "ContainerEntry",
    "LegacyNameZipInfo",
    "iter_source_files",
    "pack_directory",
    "read_container",
    "unpack_archive",
]
