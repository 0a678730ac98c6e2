"""Batch orchestration: detect, open, unpack and publish archives."""

import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from .common import LogContext
from .config import DEFAULT_COPY_BUFFER_SIZE, DEFAULT_SNIFF_BYTES, UnboxConfig
from .detection import for_path
from .errors import UnsupportedArchiveError
from .formats import ArchiveType
from .readers import ArchiveReader, open_archive
from .workspace import ExtractionWorkspace

logger = logging.getLogger(__name__)


class Unboxer:
    """Unpacks a batch of archives into one destination directory.

    Every input is detected and opened before the first one is unpacked,
    so an unsupported or unreadable input aborts the batch before anything
    is published. Archives are then unpacked one at a time; a failure
    stops the batch and leaves already published archives in place.
    """

    def __init__(
        self,
        destination: Path,
        skip_unknown: bool = False,
        sniff_bytes: int = DEFAULT_SNIFF_BYTES,
        show_progress: bool = True,
        refresh_per_second: float = 5.0,
        copy_buffer_size: int = DEFAULT_COPY_BUFFER_SIZE,
        keep_failed_scratch: bool = False,
        temp_root: Optional[Path] = None
    ):
        """Initialize the unboxer.

        Args:
            destination: Directory the unpacked items are published into
            skip_unknown: Skip unsupported inputs instead of failing
            sniff_bytes: Size of the content prefix used for detection
            show_progress: Whether to render a live progress display
            refresh_per_second: Repaint rate of the progress display
            copy_buffer_size: Buffer size used when copying entry data
            keep_failed_scratch: Leave scratch directories of failed archives behind
            temp_root: Temp area for scratch directories
        """
        self.destination = Path(destination)
        self.skip_unknown = skip_unknown
        self.sniff_bytes = sniff_bytes
        self.show_progress = show_progress
        self.refresh_per_second = refresh_per_second
        self.copy_buffer_size = copy_buffer_size
        self.keep_failed_scratch = keep_failed_scratch
        self.temp_root = temp_root

    @classmethod
    def from_config(cls, config: UnboxConfig) -> "Unboxer":
        """Create an unboxer from the loaded configuration."""
        return cls(
            destination=Path(config.extraction.destination),
            skip_unknown=config.extraction.skip_unknown,
            sniff_bytes=config.detection.sniff_bytes,
            show_progress=config.progress.enabled,
            refresh_per_second=config.progress.refresh_per_second,
            copy_buffer_size=config.extraction.copy_buffer_size,
            keep_failed_scratch=config.extraction.keep_failed_scratch
        )

    def detect(self, path: Path) -> Optional[ArchiveType]:
        """Determine the archive type of ``path``."""
        return for_path(path, self.sniff_bytes)

    def analyze(self, paths: Iterable[Path]) -> List[Tuple[Path, Optional[ArchiveType]]]:
        """Detect the type of every input without unpacking anything.

        Returns:
            List of (path, archive type or None) pairs in input order
        """
        return [(Path(path), self.detect(path)) for path in paths]

    def open_all(self, paths: Iterable[Path]) -> List[ArchiveReader]:
        """Detect and open every input.

        Readers opened so far are closed again if any input fails.

        Raises:
            UnsupportedArchiveError: If an input is not a supported archive
                and unknown inputs are not skipped
            ArchiveOpenError: If an archive cannot be opened
        """
        readers: List[ArchiveReader] = []
        try:
            for path in paths:
                path = Path(path)
                archive_type = self.detect(path)
                if archive_type is None:
                    if self.skip_unknown:
                        logger.info(f"Skipping unsupported file: {path}")
                        continue
                    raise UnsupportedArchiveError(
                        f"Unsupported archive format: {path}",
                        path=str(path)
                    )

                logger.info(f"{path}: {archive_type.display_name}")
                readers.append(open_archive(archive_type, path))
        except BaseException:
            for reader in readers:
                reader.close()
            raise

        return readers

    def unpack(self, reader: ArchiveReader) -> Path:
        """Unpack one opened archive and publish it.

        Returns:
            Path of the published file or folder

        Raises:
            ExtractionError: If the entries cannot be unpacked
            PublishError: If the result cannot be moved into the destination
        """
        with LogContext(logger, archive=str(reader.path)):
            logger.info(f"Unpacking {reader.path}")
            workspace = ExtractionWorkspace.create(
                reader,
                self.destination,
                show_progress=self.show_progress,
                refresh_per_second=self.refresh_per_second,
                copy_buffer_size=self.copy_buffer_size,
                keep_scratch=self.keep_failed_scratch,
                temp_root=self.temp_root
            )
            with workspace:
                reader.unpack(workspace)
                return workspace.commit()

    def unpack_all(
        self,
        paths: Iterable[Path],
        on_published: Optional[Callable[[Path], None]] = None
    ) -> List[Path]:
        """Unpack every input into the destination.

        Args:
            paths: Archives to unpack
            on_published: Optional callback invoked with each published path

        Returns:
            Published paths in input order
        """
        readers = self.open_all(paths)
        if not readers:
            logger.warning("No archives to unpack")
            return []

        published: List[Path] = []
        try:
            for reader in readers:
                result = self.unpack(reader)
                published.append(result)
                if on_published is not None:
                    on_published(result)
        finally:
            for reader in readers:
                reader.close()

        logger.info(f"Unpacked {len(published)} archive(s) into {self.destination}")
        return published
