"""Conflict-free renaming into the destination directory."""

import logging
import os
import re
from pathlib import Path

logger = logging.getLogger(__name__)

# Shortest non-empty prefix, first run of digits, remainder
INCREMENT_PATTERN = re.compile(r"^(.+?)(\d+)(.*?)$", re.DOTALL)


def increment_name(name: str) -> str:
    """Increment the first number in a file name.

    Args:
        name: Base name of a path

    Returns:
        The next candidate name. ``"foo-2.txt"`` becomes ``"foo-3.txt"``,
        a name without digits gets ``"-2"`` appended.

    Examples:
        >>> increment_name("foo")
        'foo-2'
        >>> increment_name("Something (2)")
        'Something (3)'
    """
    match = INCREMENT_PATTERN.match(name)
    if match is None:
        return f"{name}-2"
    prefix, digits, suffix = match.groups()
    return f"{prefix}{int(digits) + 1}{suffix}"


def rename_resolving_conflict(src: Path, dst: Path) -> Path:
    """Rename ``src`` to ``dst``, picking a fresh name if ``dst`` is taken.

    Existing paths are never overwritten: when ``dst`` exists, successive
    names produced by :func:`increment_name` are tried in the same parent
    directory until an unused one is found.

    Args:
        src: Path to move
        dst: Preferred target path

    Returns:
        The path ``src`` ended up at

    Raises:
        OSError: If the rename itself fails
    """
    src = Path(src)
    dst = Path(dst)

    if not os.path.lexists(dst):
        os.rename(src, dst)
        return dst

    dst = Path.cwd() / dst
    parent = dst.parent
    basename = dst.name
    while True:
        basename = increment_name(basename)
        candidate = parent / basename
        if not os.path.lexists(candidate):
            logger.info(f"{dst.name} already exists, publishing as {basename}")
            os.rename(src, candidate)
            return candidate
