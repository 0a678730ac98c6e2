"""ZIP archives."""

import logging
import stat
import zipfile
from pathlib import Path
from typing import Optional

from ..errors import ArchiveOpenError, CorruptedArchiveError, ExtractionError
from .base import safe_entry_path

logger = logging.getLogger(__name__)

ZIP_SEPARATORS = ("/", "\\")


def is_directory_entry(info: zipfile.ZipInfo) -> bool:
    """Check if a ZIP entry is a directory.

    The Unix mode stored in the high 16 bits of ``external_attr`` wins;
    a trailing slash marks directories written without a mode.
    """
    unix_mode = info.external_attr >> 16
    return stat.S_ISDIR(unix_mode) or info.filename.endswith("/")


class ZipReader:
    """Reads ZIP archives through their central directory."""

    def __init__(self, path: Path, archive: zipfile.ZipFile):
        self._path = path
        self._zip = archive
        self._total_size = sum(info.file_size for info in archive.infolist())

    @classmethod
    def open(cls, path: Path) -> "ZipReader":
        """Open a ZIP archive and read its central directory.

        Raises:
            ArchiveOpenError: If the file cannot be read
            CorruptedArchiveError: If the file is not a valid ZIP archive
        """
        try:
            path = Path(path).resolve(strict=True)
            archive = zipfile.ZipFile(path, 'r')
        except zipfile.BadZipFile as e:
            raise CorruptedArchiveError(f"Not a valid ZIP archive: {path}", path=str(path)) from e
        except OSError as e:
            raise ArchiveOpenError(f"Cannot open {path}: {e}", path=str(path)) from e
        return cls(path, archive)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def total_size(self) -> Optional[int]:
        return self._total_size

    def unpack(self, workspace) -> None:
        """Extract all entries into the workspace."""
        skipped = 0
        try:
            for info in self._zip.infolist():
                name = safe_entry_path(info.filename, ZIP_SEPARATORS)
                if name is None:
                    skipped += 1
                    continue

                if is_directory_entry(info):
                    workspace.ensure_dir(name)
                    continue

                with self._zip.open(info) as source:
                    workspace.write_file_with_progress(name, source)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, NotImplementedError, RuntimeError) as e:
            raise ExtractionError(f"Failed to decode {self._path}: {e}", path=str(self._path)) from e
        except OSError as e:
            raise ExtractionError(f"Failed to extract {self._path}: {e}", path=str(self._path)) from e

        if skipped:
            logger.warning(f"Skipped {skipped} unsafe entries in {self._path.name}")

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> "ZipReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
