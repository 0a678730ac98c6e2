"""Unix ar archives (also the outer layer of Debian packages).

Member headers, including the GNU and BSD long name dialects, are decoded
by arpy; this reader only filters out symbol tables and unsafe names.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import arpy

from ..errors import ArchiveOpenError, CorruptedArchiveError, ExtractionError
from .base import safe_entry_path

logger = logging.getLogger(__name__)

# Symbol tables written by linkers, not archive members
SYMBOL_TABLES = frozenset({b"/", b"/SYM64/", b"__.SYMDEF", b"__.SYMDEF SORTED"})


def member_name(header) -> bytes:
    """Return the stored name of a member without its terminators."""
    name = header.name.rstrip(b"\0").rstrip(b" ")
    if name.endswith(b"/") and name not in SYMBOL_TABLES:
        name = name[:-1]
    return name


class ArReader:
    """Reads ar archives member by member.

    The archive has no central directory, so progress is measured against
    the archive size on disk.
    """

    def __init__(self, path: Path, total_size: int, archive: arpy.Archive):
        self._path = path
        self._total_size = total_size
        self._archive = archive

    @classmethod
    def open(cls, path: Path) -> "ArReader":
        """Open an ar archive and validate its global header.

        Raises:
            ArchiveOpenError: If the file cannot be read
            CorruptedArchiveError: If the global header is missing
        """
        try:
            path = Path(path).resolve(strict=True)
            total_size = path.stat().st_size
            f = open(path, 'rb')
        except OSError as e:
            raise ArchiveOpenError(f"Cannot open {path}: {e}", path=str(path)) from e

        try:
            archive = arpy.Archive(fileobj=f)
        except arpy.ArchiveFormatError as e:
            f.close()
            raise CorruptedArchiveError(f"Not a valid ar archive: {path}", path=str(path)) from e
        return cls(path, total_size, archive)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def total_size(self) -> Optional[int]:
        return self._total_size

    def unpack(self, workspace) -> None:
        """Extract all members into the workspace."""
        skipped = 0
        try:
            for member in self._archive:
                if not self._unpack_member(member, workspace):
                    skipped += 1
        except (arpy.ArchiveFormatError, arpy.ArchiveAccessError, EOFError) as e:
            raise ExtractionError(f"Failed to decode {self._path}: {e}", path=str(self._path)) from e
        except OSError as e:
            raise ExtractionError(f"Failed to extract {self._path}: {e}", path=str(self._path)) from e

        if skipped:
            logger.warning(f"Skipped {skipped} unsafe entries in {self._path.name}")

    def _unpack_member(self, member, workspace) -> bool:
        """Process one member; returns False if it was skipped as unsafe."""
        raw_name = member_name(member.header)
        if raw_name in SYMBOL_TABLES:
            return True

        name = safe_entry_path(os.fsdecode(raw_name))
        if name is None:
            return False

        written = workspace.write_file_with_progress(name, member)
        if written < member.header.size:
            raise EOFError(f"ar member {os.fsdecode(raw_name)!r} is truncated")
        return True

    def close(self) -> None:
        self._archive.close()

    def __enter__(self) -> "ArReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
