"""Scratch-area extraction and atomic publishing into the destination."""

import io
import logging
import os
from pathlib import Path, PurePath
from typing import BinaryIO, Callable, Optional, Union

from .config import DEFAULT_COPY_BUFFER_SIZE
from .conflicts import rename_resolving_conflict
from .errors import ExtractionError, PublishError
from .progress import ExtractionProgress
from .readers.base import ArchiveReader
from .scratch import ScratchDirectory, ScratchPlacement

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_BASE = "Archive"

EntryName = Union[str, PurePath]


def copy_with_progress(
    reader: BinaryIO,
    writer: BinaryIO,
    advance: Optional[Callable[[int], None]] = None,
    buffer_size: int = DEFAULT_COPY_BUFFER_SIZE
) -> int:
    """Copy ``reader`` into ``writer`` chunk by chunk.

    Interrupted reads are retried.

    Args:
        reader: Source stream
        writer: Destination stream
        advance: Optional callback receiving the size of every copied chunk
        buffer_size: Chunk size in bytes

    Returns:
        Number of bytes copied
    """
    written = 0
    while True:
        try:
            chunk = reader.read(buffer_size)
        except InterruptedError:
            continue
        if not chunk:
            return written
        writer.write(chunk)
        written += len(chunk)
        if advance is not None:
            advance(len(chunk))


class ProgressReader(io.RawIOBase):
    """Raw stream that reports every byte read to a callback."""

    def __init__(self, raw: BinaryIO, advance: Callable[[int], None]):
        super().__init__()
        self._raw = raw
        self._advance = advance

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        count = self._raw.readinto(buffer)
        if count:
            self._advance(count)
        return count

    def close(self) -> None:
        if not self.closed:
            self._raw.close()
        super().close()


class ExtractionWorkspace:
    """Stages an archive's entries in scratch space and publishes the result.

    Entries are written below a scratch directory that is never visible
    under its final name. :meth:`commit` moves the content into the
    destination in one rename: a single top-level entry is published
    directly, anything else is published as a folder named after the
    archive.
    """

    def __init__(
        self,
        archive_base: str,
        destination: Path,
        scratch: ScratchDirectory,
        progress: ExtractionProgress,
        copy_buffer_size: int = DEFAULT_COPY_BUFFER_SIZE,
        keep_scratch: bool = False
    ):
        self.archive_base = archive_base
        self.destination = destination
        self.scratch = scratch
        self.progress = progress
        self.copy_buffer_size = copy_buffer_size
        self.keep_scratch = keep_scratch

    @classmethod
    def create(
        cls,
        reader: ArchiveReader,
        destination: Path,
        *,
        placement: Optional[ScratchPlacement] = None,
        show_progress: bool = True,
        refresh_per_second: float = 5.0,
        copy_buffer_size: int = DEFAULT_COPY_BUFFER_SIZE,
        keep_scratch: bool = False,
        temp_root: Optional[Path] = None
    ) -> "ExtractionWorkspace":
        """Create a workspace for unpacking ``reader`` into ``destination``.

        Args:
            reader: Opened archive
            destination: Existing directory to publish into
            placement: Force a scratch placement instead of trying a rename
            show_progress: Whether to render a live progress display
            refresh_per_second: Repaint rate of the progress display
            copy_buffer_size: Buffer size used when copying entry data
            keep_scratch: Leave the scratch directory behind on failure
            temp_root: Temp area for the scratch directory

        Raises:
            PublishError: If the destination is not an existing directory
            ExtractionError: If the scratch directory cannot be created
        """
        archive_base = reader.path.stem or DEFAULT_ARCHIVE_BASE

        try:
            destination = Path(destination).resolve(strict=True)
        except OSError as e:
            raise PublishError(
                f"Destination does not exist: {destination}",
                destination=str(destination)
            ) from e
        if not destination.is_dir():
            raise PublishError(
                f"Destination is not a directory: {destination}",
                destination=str(destination)
            )

        try:
            scratch = ScratchDirectory.create(destination, placement, temp_root)
        except OSError as e:
            raise ExtractionError(
                f"Cannot create scratch directory for {destination}: {e}",
                destination=str(destination)
            ) from e

        progress = ExtractionProgress(
            reader.total_size,
            enabled=show_progress,
            refresh_per_second=refresh_per_second
        )
        return cls(
            archive_base,
            destination,
            scratch,
            progress,
            copy_buffer_size=copy_buffer_size,
            keep_scratch=keep_scratch
        )

    @property
    def path(self) -> Path:
        """Root of the scratch directory."""
        return self.scratch.path

    def report_file(self, name: EntryName) -> None:
        """Show ``name`` as the file currently being processed."""
        self.progress.set_file(str(name))

    def wrap_read(self, fileobj: BinaryIO) -> BinaryIO:
        """Wrap a raw stream so that every byte read advances the progress."""
        return io.BufferedReader(ProgressReader(fileobj, self.progress.advance))

    def contains(self, path: Union[str, Path]) -> bool:
        """Whether ``path`` lies inside scratch once symlinks are followed."""
        root = os.path.realpath(self.path)
        real = os.path.realpath(path)
        return real == root or real.startswith(root + os.sep)

    def entry_path(self, name: EntryName) -> Path:
        """Return the scratch path for entry ``name``.

        Raises:
            ExtractionError: If the entry would land outside scratch, either
                by its name or through a symlink unpacked earlier
        """
        relative = PurePath(name)
        if relative.anchor or ".." in relative.parts:
            raise ExtractionError(f"Refusing to write outside scratch: {name}", entry=str(name))
        target = self.path / relative
        if not self.contains(target.parent):
            raise ExtractionError(
                f"Refusing to write through a link leaving scratch: {name}",
                entry=str(name)
            )
        return target

    def ensure_dir(self, name: EntryName) -> Path:
        """Create directory ``name`` (and its parents) in scratch."""
        target = self.entry_path(name)
        if not self.contains(target):
            raise ExtractionError(
                f"Refusing to write through a link leaving scratch: {name}",
                entry=str(name)
            )
        target.mkdir(parents=True, exist_ok=True)
        return target

    def write_file(self, name: EntryName) -> BinaryIO:
        """Create file ``name`` in scratch and return it opened for writing.

        A symlink already sitting at ``name`` is replaced, never followed.
        """
        target = self.entry_path(name)
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.is_symlink():
            target.unlink()
        self.report_file(name)
        return open(target, "wb")

    def remove_escaping_links(self) -> int:
        """Delete symlinks in scratch that resolve to a place outside it.

        A link can start pointing outside once a later entry replaces a
        path component it goes through, so this runs after all entries are
        written.

        Returns:
            Number of links removed
        """
        removed = 0
        for parent, dirs, files in os.walk(self.path):
            for name in dirs + files:
                link = os.path.join(parent, name)
                if os.path.islink(link) and not self.contains(link):
                    logger.warning(
                        f"Removing link {os.path.relpath(link, self.path)!r} that leaves the archive"
                    )
                    os.unlink(link)
                    removed += 1
        return removed

    def write_file_with_progress(
        self,
        name: EntryName,
        reader: BinaryIO,
        advance_progress: bool = True
    ) -> int:
        """Stream ``reader`` into a new scratch file.

        Args:
            name: Relative path of the file in scratch
            reader: Source of the file contents
            advance_progress: Count copied bytes towards the progress total.
                Readers that already track raw archive bytes through
                :meth:`wrap_read` pass False.

        Returns:
            Number of bytes written
        """
        advance = self.progress.advance if advance_progress else None
        with self.write_file(name) as f:
            return copy_with_progress(reader, f, advance, self.copy_buffer_size)

    def commit(self) -> Path:
        """Publish the unpacked content into the destination.

        Returns:
            Path of the published file or folder

        Raises:
            PublishError: If the content cannot be moved into the destination
        """
        self.progress.finish()

        with os.scandir(self.path) as it:
            children = [entry.name for entry in it]

        if len(children) == 1:
            source = self.path / children[0]
            intended = self.destination / children[0]
        else:
            source = self.path
            intended = self.destination / self.archive_base

        try:
            published = rename_resolving_conflict(source, intended)
        except OSError as e:
            raise PublishError(
                f"Failed to publish {intended}: {e}",
                source=str(source),
                destination=str(intended)
            ) from e

        self.scratch.cleanup()
        logger.info(f"Published {published}")
        return published

    def cleanup(self) -> None:
        """Remove the scratch directory if it still exists."""
        self.progress.finish()
        self.scratch.cleanup()

    def __enter__(self) -> "ExtractionWorkspace":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None and self.keep_scratch:
            self.progress.finish()
            logger.warning(f"Leaving scratch directory in place: {self.path}")
            return
        self.cleanup()
