"""Microsoft cabinet files, standalone or embedded in a Windows executable.

Cabinet decoding (stored and MSZIP folders) is done by cabarchive; pefile
locates a cabinet carried as the overlay of a self-extracting installer.
"""

import io
import logging
from pathlib import Path
from typing import List, Optional

import pefile
from cabarchive import CabArchive, CorruptionError, NotSupportedError

from ..errors import ArchiveOpenError, CorruptedArchiveError, ExtractionError
from .base import safe_entry_path

logger = logging.getLogger(__name__)

CAB_SIGNATURE = b"MSCF"
CAB_SEPARATORS = ("\\", "/")


def find_cabinet_offset(path: Path) -> Optional[int]:
    """Locate a cabinet appended after the last section of a PE executable.

    Self-extracting installers carry their payload as an overlay: the
    cabinet starts where the raw data of the last section ends.

    Args:
        path: Path to a Windows executable

    Returns:
        Byte offset of the cabinet, or None if the file is not an
        executable or carries no cabinet at that offset
    """
    try:
        pe = pefile.PE(str(path), fast_load=True)
    except (pefile.PEFormatError, OSError) as e:
        logger.debug(f"Not a PE executable: {path}: {e}")
        return None

    try:
        if not pe.sections:
            return None
        last = pe.sections[-1]
        offset = last.PointerToRawData + last.SizeOfRawData
    finally:
        pe.close()

    with open(path, 'rb') as f:
        f.seek(offset)
        if f.read(len(CAB_SIGNATURE)) != CAB_SIGNATURE:
            return None

    logger.debug(f"Found cabinet at offset {offset} in {path}")
    return offset


class CabReader:
    """Reads cabinet files.

    cabarchive decodes the whole cabinet when it is opened, so members are
    held in memory until the reader is closed.
    """

    def __init__(self, path: Path, archive: CabArchive, offset: int = 0):
        self._path = path
        self._archive = archive
        self._offset = offset
        self._total_size = sum(len(member.buf or b"") for member in archive.values())

    @classmethod
    def open(cls, path: Path) -> "CabReader":
        """Open a cabinet, or an executable carrying one.

        Only the bytes from the cabinet signature onwards are read.

        Raises:
            ArchiveOpenError: If the file cannot be read, or the cabinet
                spans several files or uses an unsupported compression
            CorruptedArchiveError: If no valid cabinet can be found
        """
        try:
            path = Path(path).resolve(strict=True)
            with open(path, 'rb') as f:
                offset = 0
                if f.read(len(CAB_SIGNATURE)) != CAB_SIGNATURE:
                    offset = find_cabinet_offset(path)
                if offset is None:
                    raise CorruptedArchiveError(f"No cabinet found in {path}", path=str(path))
                f.seek(offset)
                data = f.read()
        except OSError as e:
            raise ArchiveOpenError(f"Cannot open {path}: {e}", path=str(path)) from e

        archive = CabArchive()
        try:
            archive.parse(data)
        except NotSupportedError as e:
            raise ArchiveOpenError(f"Unsupported cabinet {path}: {e}", path=str(path)) from e
        except CorruptionError as e:
            raise CorruptedArchiveError(f"Corrupted cabinet {path}: {e}", path=str(path)) from e
        return cls(path, archive, offset)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def total_size(self) -> Optional[int]:
        return self._total_size

    @property
    def offset(self) -> int:
        """Position of the cabinet inside the source file."""
        return self._offset

    @property
    def members(self) -> List[str]:
        return list(self._archive.keys())

    def unpack(self, workspace) -> None:
        """Write all members into the workspace."""
        skipped = 0
        try:
            for member in self._archive.values():
                name = safe_entry_path(member.filename, CAB_SEPARATORS)
                if name is None:
                    skipped += 1
                    continue
                workspace.write_file_with_progress(name, io.BytesIO(member.buf or b""))
        except OSError as e:
            raise ExtractionError(f"Failed to extract {self._path}: {e}", path=str(self._path)) from e

        if skipped:
            logger.warning(f"Skipped {skipped} unsafe entries in {self._path.name}")

    def close(self) -> None:
        self._archive.clear()

    def __enter__(self) -> "CabReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
