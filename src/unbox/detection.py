"""Archive format detection.

Content is sniffed first; the filename is only consulted when the content
says nothing useful. Compression is peeled exactly once, so a gzip stream
carrying a tarball is a gzip-compressed tarball while a gzip stream
carrying anything else is a single compressed file.
"""

import logging
import lzma
import re
import zlib
from pathlib import Path
from types import MappingProxyType
from typing import Optional

from .config import DEFAULT_SNIFF_BYTES
from .formats import ArchiveType, Compression
from .mime_detector import sniff_mime_type
from .readers.cab import find_cabinet_offset

logger = logging.getLogger(__name__)

EXECUTABLE_MIME_TYPE = 'application/x-msdownload'

CONTAINER_MIME_TYPES = MappingProxyType({
    'application/zip': ArchiveType.ZIP,
    'application/x-tar': ArchiveType.TAR,
    'application/x-unix-archive': ArchiveType.AR,
    'application/vnd.ms-cab-compressed': ArchiveType.CAB,
})

# Tried in order, first match wins
FILENAME_PATTERNS = (
    (re.compile(r"\.ar?$", re.IGNORECASE), ArchiveType.AR),
    (re.compile(r"\.zip$", re.IGNORECASE), ArchiveType.ZIP),
    (re.compile(r"\.tar$", re.IGNORECASE), ArchiveType.TAR),
    (re.compile(r"\.t(ar\.gz|gz)$", re.IGNORECASE), ArchiveType.TAR_GZ),
    (re.compile(r"\.t(ar\.xz|xz)$", re.IGNORECASE), ArchiveType.TAR_XZ),
    (re.compile(r"\.t(ar\.bz2|bz2?)$", re.IGNORECASE), ArchiveType.TAR_BZ2),
    (re.compile(r"\.cab$", re.IGNORECASE), ArchiveType.CAB),
)


def container_for(data: bytes) -> Optional[ArchiveType]:
    """Return the container type the bytes start with, if any."""
    return CONTAINER_MIME_TYPES.get(sniff_mime_type(data))


def for_content(data: bytes, sniff_bytes: int = DEFAULT_SNIFF_BYTES) -> Optional[ArchiveType]:
    """Classify a content prefix, peeling at most one compression layer.

    Args:
        data: Leading bytes of the file
        sniff_bytes: Maximum number of decompressed bytes to inspect

    Returns:
        The archive type, or None if the content does not identify one
    """
    mime_type = sniff_mime_type(data)

    container = CONTAINER_MIME_TYPES.get(mime_type)
    if container is not None:
        return container

    compression = Compression.for_mime_type(mime_type)
    if compression is None:
        return None

    try:
        inner = compression.decompress_prefix(data, sniff_bytes)
    except (zlib.error, lzma.LZMAError, OSError, ValueError, EOFError) as e:
        logger.debug(f"Cannot decompress {compression.value} prefix: {e}")
        inner = b""

    interior = container_for(inner) if inner else None
    archive_type = compression.as_archive_type(interior)
    if archive_type is None:
        logger.debug(f"{compression.value} stream wraps unsupported {interior}")
    return archive_type


def for_filename(path: Path) -> Optional[ArchiveType]:
    """Guess the archive type from the filename alone."""
    name = Path(path).name
    for pattern, archive_type in FILENAME_PATTERNS:
        if pattern.search(name):
            return archive_type
    return None


def _sniff(path: Path, sniff_bytes: int) -> Optional[ArchiveType]:
    with open(path, 'rb') as f:
        data = f.read(sniff_bytes)

    archive_type = for_content(data, sniff_bytes)
    if archive_type is not None:
        return archive_type

    if sniff_mime_type(data) == EXECUTABLE_MIME_TYPE and find_cabinet_offset(path) is not None:
        return ArchiveType.CAB
    return None


def for_path(path: Path, sniff_bytes: int = DEFAULT_SNIFF_BYTES) -> Optional[ArchiveType]:
    """Determine the archive type of a file.

    Args:
        path: File to inspect
        sniff_bytes: Size of the content prefix to read

    Returns:
        The detected archive type, or None if the file is not supported
    """
    path = Path(path)

    try:
        archive_type = _sniff(path, sniff_bytes)
    except OSError as e:
        logger.debug(f"Cannot sniff {path}: {e}")
        archive_type = None

    if archive_type is not None:
        logger.debug(f"{path}: detected {archive_type.value} from content")
        return archive_type

    archive_type = for_filename(path)
    if archive_type is not None:
        logger.debug(f"{path}: detected {archive_type.value} from filename")
    else:
        logger.debug(f"{path}: unsupported")
    return archive_type
