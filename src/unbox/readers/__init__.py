"""Archive readers, one per supported format."""

from pathlib import Path

from ..formats import ArchiveType
from .ar import ArReader
from .base import ArchiveReader, normalize_entry_path, safe_entry_path
from .cab import CabReader, find_cabinet_offset
from .single_file import SingleFileReader
from .tar import TarReader
from .zip import ZipReader


def open_archive(archive_type: ArchiveType, path: Path) -> ArchiveReader:
    """Open ``path`` with the reader for ``archive_type``.

    Raises:
        ArchiveOpenError: If the archive cannot be opened
    """
    if archive_type is ArchiveType.ZIP:
        return ZipReader.open(path)
    if archive_type is ArchiveType.AR:
        return ArReader.open(path)
    if archive_type is ArchiveType.CAB:
        return CabReader.open(path)
    if archive_type in (ArchiveType.TAR, ArchiveType.TAR_GZ, ArchiveType.TAR_XZ, ArchiveType.TAR_BZ2):
        return TarReader.open(path, archive_type.compression)
    if archive_type in (ArchiveType.SINGLE_FILE_GZ, ArchiveType.SINGLE_FILE_XZ, ArchiveType.SINGLE_FILE_BZ2):
        return SingleFileReader.open(path, archive_type.compression)
    raise ValueError(f"Unknown archive type: {archive_type!r}")


__all__ = [
    "ArchiveReader",
    "ArReader",
    "CabReader",
    "SingleFileReader",
    "TarReader",
    "ZipReader",
    "find_cabinet_offset",
    "normalize_entry_path",
    "open_archive",
    "safe_entry_path",
]
