"""Tarballs, optionally wrapped in gzip, xz or bzip2."""

import logging
import lzma
import os
import posixpath
import tarfile
import zlib
from pathlib import Path, PurePosixPath
from typing import Optional

from ..errors import ArchiveOpenError, ExtractionError
from ..formats import Compression
from .base import normalize_entry_path, safe_entry_path

logger = logging.getLogger(__name__)


class TarReader:
    """Reads tarballs as a forward-only stream.

    Tarballs have no central directory, so the size of the archive file
    on disk stands in for the total and progress follows the raw bytes
    read from it.
    """

    def __init__(self, path: Path, compression: Compression, total_size: int):
        self._path = path
        self._compression = compression
        self._total_size = total_size

    @classmethod
    def open(cls, path: Path, compression: Compression = Compression.UNCOMPRESSED) -> "TarReader":
        """Open a tarball.

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
        """Extract all members into the workspace."""
        skipped = 0
        # Permissions are applied last so that read-only members can be overwritten
        modes = {}
        try:
            with workspace.wrap_read(open(self._path, 'rb')) as raw:
                with tarfile.open(fileobj=raw, mode=self._compression.tar_mode) as tar:
                    for member in tar:
                        if not self._unpack_member(tar, member, workspace, modes):
                            skipped += 1
            for path, mode in modes.items():
                if not path.is_symlink() and workspace.contains(path):
                    os.chmod(path, mode)
            skipped += workspace.remove_escaping_links()
        except (tarfile.TarError, EOFError, zlib.error, lzma.LZMAError) as e:
            raise ExtractionError(f"Failed to decode {self._path}: {e}", path=str(self._path)) from e
        except OSError as e:
            raise ExtractionError(f"Failed to extract {self._path}: {e}", path=str(self._path)) from e

        if skipped:
            logger.warning(f"Skipped {skipped} entries in {self._path.name}")

    def _unpack_member(self, tar: tarfile.TarFile, member: tarfile.TarInfo, workspace, modes: dict) -> bool:
        """Write one member into scratch.

        Returns:
            False if the member was skipped
        """
        name = safe_entry_path(member.name)
        if name is None:
            return member.name.strip("/") in ("", ".")

        if not workspace.contains(workspace.path / name.parent):
            logger.warning(f"Skipping {member.name!r}: its directory is a link leaving the archive")
            return False

        workspace.report_file(name)

        if member.isdir():
            workspace.ensure_dir(name)
            return True

        if member.isfile():
            source = tar.extractfile(member)
            workspace.write_file_with_progress(name, source, advance_progress=False)
            modes[workspace.path / name] = member.mode & 0o777
            return True

        if member.issym():
            return self._unpack_symlink(member, name, workspace)

        if member.islnk():
            return self._unpack_hardlink(member, name, workspace, modes)

        logger.debug(f"Skipping special member {member.name!r} (type {member.type!r})")
        return False

    def _unpack_symlink(self, member: tarfile.TarInfo, name: PurePosixPath, workspace) -> bool:
        # Link targets are relative to the directory holding the link
        resolved = posixpath.normpath(posixpath.join(str(name.parent), member.linkname))
        if member.linkname.startswith("/") or resolved == ".." or resolved.startswith("../"):
            logger.warning(f"Skipping symlink {member.name!r} pointing outside the archive")
            return False

        link_path = workspace.entry_path(name)
        link_path.parent.mkdir(parents=True, exist_ok=True)
        if not workspace.contains(link_path.parent / member.linkname):
            logger.warning(f"Skipping symlink {member.name!r} resolving outside the archive")
            return False

        if os.path.lexists(link_path):
            link_path.unlink()
        os.symlink(member.linkname, link_path)
        return True

    def _unpack_hardlink(self, member: tarfile.TarInfo, name: PurePosixPath, workspace, modes: dict) -> bool:
        target = normalize_entry_path(member.linkname)
        if target is None:
            logger.warning(f"Skipping hard link {member.name!r} pointing outside the archive")
            return False

        source = workspace.path / target
        if not source.is_file() or source.is_symlink() or not workspace.contains(source):
            logger.warning(f"Skipping hard link {member.name!r}: {member.linkname!r} not extracted")
            return False

        with open(source, 'rb') as f:
            workspace.write_file_with_progress(name, f, advance_progress=False)
        modes[workspace.path / name] = modes.get(source, source.stat().st_mode & 0o777)
        return True

    def close(self) -> None:
        pass

    def __enter__(self) -> "TarReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
