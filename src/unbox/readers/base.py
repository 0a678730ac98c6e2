"""Common interface and entry path policy shared by all archive readers."""

import logging
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import TYPE_CHECKING, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from ..workspace import ExtractionWorkspace

logger = logging.getLogger(__name__)


class ArchiveReader(Protocol):
    """Capabilities every archive format provides."""

    @property
    def path(self) -> Path:
        """Canonical path of the archive."""
        ...

    @property
    def total_size(self) -> Optional[int]:
        """Total number of bytes progress is measured against, if known."""
        ...

    def unpack(self, workspace: "ExtractionWorkspace") -> None:
        """Stream all entries into the workspace scratch directory."""
        ...

    def close(self) -> None:
        """Release decoder state."""
        ...


def normalize_entry_path(name: str, separators: Sequence[str] = ("/",)) -> Optional[PurePosixPath]:
    """Normalize a stored entry name into a safe relative path.

    Every character in ``separators`` is treated as a path separator. Empty
    and ``.`` components are dropped.

    Args:
        name: Entry name as stored in the archive
        separators: Separators native to the archive format

    Returns:
        Relative path of the entry, or None if the entry must be skipped
        because it is absolute, carries a drive or UNC prefix, climbs out
        with ``..`` or has no name at all
    """
    for sep in separators:
        if sep != "/":
            name = name.replace(sep, "/")

    if name.startswith("/"):
        return None
    if PureWindowsPath(name).drive:
        return None

    parts = []
    for part in name.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            return None
        parts.append(part)

    if not parts:
        return None
    return PurePosixPath(*parts)


def safe_entry_path(name: str, separators: Sequence[str] = ("/",)) -> Optional[PurePosixPath]:
    """Like :func:`normalize_entry_path` but logs rejected entries."""
    path = normalize_entry_path(name, separators)
    if path is None and name.replace("\\", "/").strip("/") not in ("", "."):
        logger.warning(f"Skipping unsafe entry path: {name!r}")
    return path
