"""Supported archive types and compression layers."""

import bz2
import gzip
import lzma
import zlib
from enum import Enum
from typing import BinaryIO, Optional


class ArchiveType(Enum):
    """Supported archive types."""
    AR = "ar"
    ZIP = "zip"
    TAR = "tar"
    TAR_GZ = "tar.gz"
    TAR_XZ = "tar.xz"
    TAR_BZ2 = "tar.bz2"
    CAB = "cab"
    SINGLE_FILE_GZ = "gz"
    SINGLE_FILE_XZ = "xz"
    SINGLE_FILE_BZ2 = "bz2"

    @property
    def display_name(self) -> str:
        """Human-readable description of the type."""
        return _DISPLAY_NAMES[self]

    @property
    def compression(self) -> "Compression":
        """Compression layer wrapped around the container, if any."""
        return _COMPRESSION_OF[self]

    def __str__(self) -> str:
        return self.display_name


_DISPLAY_NAMES = {
    ArchiveType.AR: "unix ar archive",
    ArchiveType.ZIP: "zip archive",
    ArchiveType.TAR: "uncompressed tarball",
    ArchiveType.TAR_GZ: "gzip-compressed tarball",
    ArchiveType.TAR_XZ: "xz-compressed tarball",
    ArchiveType.TAR_BZ2: "bzip2-compressed tarball",
    ArchiveType.CAB: "microsoft cabinet",
    ArchiveType.SINGLE_FILE_GZ: "gzip-compressed file",
    ArchiveType.SINGLE_FILE_XZ: "xz-compressed file",
    ArchiveType.SINGLE_FILE_BZ2: "bzip2-compressed file",
}


class Compression(Enum):
    """Compression wrapped around a tarball or a single file."""
    UNCOMPRESSED = "uncompressed"
    GZ = "gz"
    XZ = "xz"
    BZ2 = "bz2"

    @classmethod
    def for_mime_type(cls, mime_type: str) -> Optional["Compression"]:
        """Return the compression a mimetype stands for, if it is a pure compressor."""
        return _COMPRESSION_BY_MIME_TYPE.get(mime_type)

    @property
    def suffixes(self) -> tuple:
        """Filename suffixes (lowercase) conventionally used for this compression."""
        return _SUFFIXES[self]

    @property
    def tar_mode(self) -> str:
        """Stream mode for :func:`tarfile.open`."""
        if self is Compression.UNCOMPRESSED:
            return "r|"
        return f"r|{self.value}"

    def open_stream(self, fileobj: BinaryIO) -> BinaryIO:
        """Wrap a binary stream for transparent decompression."""
        if self is Compression.GZ:
            return gzip.GzipFile(fileobj=fileobj, mode="rb")
        if self is Compression.XZ:
            return lzma.LZMAFile(fileobj, mode="rb")
        if self is Compression.BZ2:
            return bz2.BZ2File(fileobj, mode="rb")
        return fileobj

    def decompress_prefix(self, data: bytes, limit: int) -> bytes:
        """Decompress at most ``limit`` bytes from the start of ``data``.

        ``data`` may be a truncated stream; whatever can be decoded from it is
        returned.

        Raises:
            zlib.error, lzma.LZMAError, OSError, ValueError: On corrupt input
        """
        if self is Compression.GZ:
            # wbits=31 expects a gzip header
            return zlib.decompressobj(wbits=31).decompress(data, limit)
        if self is Compression.XZ:
            return lzma.LZMADecompressor().decompress(data, max_length=limit)
        if self is Compression.BZ2:
            return bz2.BZ2Decompressor().decompress(data, max_length=limit)
        return data[:limit]

    def as_archive_type(self, inner: Optional[ArchiveType]) -> Optional[ArchiveType]:
        """Combine this compression with an optional interior container.

        Only tarballs are recognized behind a compression layer; any other
        interior container yields None.
        """
        if inner is None:
            return _SINGLE_FILE_TYPES.get(self)
        if inner is ArchiveType.TAR:
            return _TAR_TYPES[self]
        return None


_COMPRESSION_BY_MIME_TYPE = {
    "application/gzip": Compression.GZ,
    "application/x-xz": Compression.XZ,
    "application/x-bzip2": Compression.BZ2,
}

_SUFFIXES = {
    Compression.UNCOMPRESSED: (),
    Compression.GZ: (".gz", ".gzip", ".z"),
    Compression.XZ: (".xz",),
    Compression.BZ2: (".bz2", ".bz"),
}

_SINGLE_FILE_TYPES = {
    Compression.GZ: ArchiveType.SINGLE_FILE_GZ,
    Compression.XZ: ArchiveType.SINGLE_FILE_XZ,
    Compression.BZ2: ArchiveType.SINGLE_FILE_BZ2,
}

_TAR_TYPES = {
    Compression.UNCOMPRESSED: ArchiveType.TAR,
    Compression.GZ: ArchiveType.TAR_GZ,
    Compression.XZ: ArchiveType.TAR_XZ,
    Compression.BZ2: ArchiveType.TAR_BZ2,
}

_COMPRESSION_OF = {
    ArchiveType.AR: Compression.UNCOMPRESSED,
    ArchiveType.ZIP: Compression.UNCOMPRESSED,
    ArchiveType.TAR: Compression.UNCOMPRESSED,
    ArchiveType.TAR_GZ: Compression.GZ,
    ArchiveType.TAR_XZ: Compression.XZ,
    ArchiveType.TAR_BZ2: Compression.BZ2,
    ArchiveType.CAB: Compression.UNCOMPRESSED,
    ArchiveType.SINGLE_FILE_GZ: Compression.GZ,
    ArchiveType.SINGLE_FILE_XZ: Compression.XZ,
    ArchiveType.SINGLE_FILE_BZ2: Compression.BZ2,
}
