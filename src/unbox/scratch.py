"""Scratch directory placement and lifetime."""

import contextlib
import logging
import os
import shutil
import tempfile
import uuid
from enum import Enum
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Orphaned scratch directories are recognized by this prefix
SCRATCH_PREFIX = ".unbox-"


class ScratchPlacement(Enum):
    """Where a scratch directory lives."""
    TEMP_AREA = "temp_area"
    DESTINATION = "destination"


def scratch_name() -> str:
    """Return a fresh, collision-resistant scratch directory name."""
    return f"{SCRATCH_PREFIX}{uuid.uuid4()}"


def choose_placement(
    destination: Path,
    name: str,
    temp_root: Optional[Path] = None
) -> ScratchPlacement:
    """Check whether a temp-area directory can be renamed into ``destination``.

    Creates ``<temp_root>/<name>``, renames it to ``<destination>/<name>`` and
    removes it again. Only when all three steps succeed is the rename at
    commit time guaranteed to stay on one filesystem.

    Args:
        destination: Directory that will receive the published item
        name: Scratch directory name to try the rename with
        temp_root: Temp area to try, defaults to the platform temp directory

    Returns:
        TEMP_AREA if the trial rename succeeded, DESTINATION otherwise
    """
    temp_root = Path(temp_root) if temp_root else Path(tempfile.gettempdir())
    trial = temp_root / name
    dummy = destination / name

    try:
        trial.mkdir()
        os.rename(trial, dummy)
        dummy.rmdir()
    except OSError as e:
        logger.debug(f"Temp area {temp_root} not usable for {destination}: {e}")
        for leftover in (trial, dummy):
            with contextlib.suppress(OSError):
                leftover.rmdir()
        return ScratchPlacement.DESTINATION

    return ScratchPlacement.TEMP_AREA


class ScratchDirectory:
    """A scratch directory that can be renamed atomically into a destination."""

    def __init__(self, path: Path, placement: ScratchPlacement):
        self.path = path
        self.placement = placement

    @classmethod
    def create(
        cls,
        destination: Path,
        placement: Optional[ScratchPlacement] = None,
        temp_root: Optional[Path] = None
    ) -> "ScratchDirectory":
        """Create a scratch directory for publishing into ``destination``.

        Args:
            destination: Existing directory the content is published into
            placement: Force a placement instead of trying a rename
            temp_root: Temp area to use, defaults to the platform temp directory

        Returns:
            The created scratch directory

        Raises:
            OSError: If the scratch directory cannot be created
        """
        destination = Path(destination)
        if not destination.is_absolute():
            destination = Path.cwd() / destination

        name = scratch_name()
        if placement is None:
            placement = choose_placement(destination, name, temp_root)

        if placement is ScratchPlacement.TEMP_AREA:
            root = Path(temp_root) if temp_root else Path(tempfile.gettempdir())
            path = root / name
        else:
            path = destination / name

        path.mkdir()
        logger.debug(f"Created scratch directory {path} ({placement.value})")
        return cls(path, placement)

    def cleanup(self) -> None:
        """Remove the scratch directory and everything in it."""
        try:
            shutil.rmtree(self.path)
        except FileNotFoundError:
            pass
