"""Bare gzip, xz or bzip2 files treated as one-entry archives."""

import logging
import lzma
import zlib
from pathlib import Path
from typing import Optional

from ..errors import ArchiveOpenError, ExtractionError
from ..formats import Compression

logger = logging.getLogger(__name__)

UNKNOWN_MEMBER_NAME = "Unknown"


def member_name(path: Path, compression: Compression) -> str:
    """Name of the decompressed file.

    The compression suffix is stripped case-insensitively. A name without
    a known suffix loses its last suffix instead.

    Examples:
        >>> member_name(Path("notes.txt.gz"), Compression.GZ)
        'notes.txt'
        >>> member_name(Path("dump.bin"), Compression.XZ)
        'dump'
    """
    name = path.name
    lowered = name.lower()
    for suffix in compression.suffixes:
        if lowered.endswith(suffix):
            name = name[:-len(suffix)]
            break
    else:
        name = path.stem

    return name or UNKNOWN_MEMBER_NAME


class SingleFileReader:
    """Decompresses a single file into the workspace.

    Progress follows compressed bytes read, measured against the size of
    the compressed file.
    """

    def __init__(self, path: Path, compression: Compression, total_size: int):
        self._path = path
        self._compression = compression
        self._total_size = total_size
        self.member_name = member_name(path, compression)

    @classmethod
    def open(cls, path: Path, compression: Compression) -> "SingleFileReader":
        """Open a compressed file.

        Raises:
            ArchiveOpenError: If the file cannot be accessed
        """
        try:
            path = Path(path).resolve(strict=True)
            total_size = path.stat().st_size
        except OSError as e:
            raise ArchiveOpenError(f"Cannot open {path}: {e}", path=str(path)) from e
        return cls(path, compression, total_size)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def total_size(self) -> Optional[int]:
        return self._total_size

    @property
    def compression(self) -> Compression:
        return self._compression

    def unpack(self, workspace) -> None:
        """Decompress the file into the workspace."""
        workspace.report_file(self.member_name)
        try:
            with workspace.wrap_read(open(self._path, 'rb')) as raw:
                with self._compression.open_stream(raw) as stream:
                    written = workspace.write_file_with_progress(
                        self.member_name,
                        stream,
                        advance_progress=False
                    )
        except (EOFError, zlib.error, lzma.LZMAError) as e:
            raise ExtractionError(f"Failed to decode {self._path}: {e}", path=str(self._path)) from e
        except OSError as e:
            raise ExtractionError(f"Failed to extract {self._path}: {e}", path=str(self._path)) from e

        logger.debug(f"Decompressed {self._path.name} into {self.member_name} ({written} bytes)")

    def close(self) -> None:
        pass

    def __enter__(self) -> "SingleFileReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
