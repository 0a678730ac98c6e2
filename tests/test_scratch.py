"""Tests for scratch directory placement."""

import os
from unittest.mock import patch

import pytest

from unbox.scratch import (
    SCRATCH_PREFIX,
    ScratchDirectory,
    ScratchPlacement,
    choose_placement,
    scratch_name,
)


@pytest.fixture
def temp_root(tmp_path):
    """Stand-in for the platform temp directory."""
    path = tmp_path / "tmp"
    path.mkdir()
    return path


class TestScratchName:
    """Test scratch directory naming."""

    def test_prefix(self):
        """Test that names carry the recognizable prefix."""
        assert scratch_name().startswith(SCRATCH_PREFIX)
        assert SCRATCH_PREFIX == ".unbox-"

    def test_names_are_unique(self):
        """Test that successive names differ."""
        assert len({scratch_name() for _ in range(20)}) == 20


class TestChoosePlacement:
    """Test the trial rename."""

    def test_same_filesystem_uses_temp_area(self, destination, temp_root):
        """Test that a successful trial rename picks the temp area and leaves nothing behind."""
        name = scratch_name()

        placement = choose_placement(destination, name, temp_root)

        assert placement is ScratchPlacement.TEMP_AREA
        assert list(destination.iterdir()) == []
        assert list(temp_root.iterdir()) == []

    def test_failed_rename_uses_destination(self, destination, temp_root):
        """Test that a failing rename falls back to the destination."""
        name = scratch_name()

        with patch("unbox.scratch.os.rename", side_effect=OSError(18, "Invalid cross-device link")):
            placement = choose_placement(destination, name, temp_root)

        assert placement is ScratchPlacement.DESTINATION
        assert list(temp_root.iterdir()) == []

    def test_missing_temp_root_uses_destination(self, destination, tmp_path):
        """Test that an unusable temp area falls back to the destination."""
        placement = choose_placement(destination, scratch_name(), tmp_path / "missing")
        assert placement is ScratchPlacement.DESTINATION


class TestScratchDirectory:
    """Test scratch directory creation and cleanup."""

    def test_forced_temp_area(self, destination, temp_root):
        """Test creating the scratch directory in the temp area."""
        scratch = ScratchDirectory.create(destination, ScratchPlacement.TEMP_AREA, temp_root)

        assert scratch.path.parent == temp_root
        assert scratch.path.is_dir()
        assert scratch.placement is ScratchPlacement.TEMP_AREA

    def test_forced_destination(self, destination, temp_root):
        """Test creating the scratch directory inside the destination."""
        scratch = ScratchDirectory.create(destination, ScratchPlacement.DESTINATION, temp_root)

        assert scratch.path.parent == destination
        assert scratch.path.name.startswith(SCRATCH_PREFIX)
        assert list(temp_root.iterdir()) == []

    def test_trial_rename_decides_placement(self, destination, temp_root):
        """Test that the trial rename result is used when no placement is forced."""
        with patch("unbox.scratch.os.rename", side_effect=OSError("no")):
            scratch = ScratchDirectory.create(destination, temp_root=temp_root)

        assert scratch.placement is ScratchPlacement.DESTINATION
        assert scratch.path.parent == destination

    def test_cleanup_removes_tree(self, destination, temp_root):
        """Test that cleanup removes nested content."""
        scratch = ScratchDirectory.create(destination, ScratchPlacement.TEMP_AREA, temp_root)
        (scratch.path / "a" / "b").mkdir(parents=True)
        (scratch.path / "a" / "b" / "c.txt").write_text("c")

        scratch.cleanup()

        assert not scratch.path.exists()

    def test_cleanup_tolerates_missing_directory(self, destination, temp_root):
        """Test that cleanup is idempotent."""
        scratch = ScratchDirectory.create(destination, ScratchPlacement.TEMP_AREA, temp_root)
        os.rmdir(scratch.path)

        scratch.cleanup()
        scratch.cleanup()
