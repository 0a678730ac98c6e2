"""Archive-specific errors."""

from .common import UnboxError


class ArchiveError(UnboxError):
    """Archive processing failed."""
    pass


class UnsupportedArchiveError(ArchiveError):
    """Archive format could not be determined."""
    pass


class ArchiveOpenError(ArchiveError):
    """Archive could not be opened."""
    pass


class CorruptedArchiveError(ArchiveOpenError):
    """Archive is corrupted or its container header is malformed."""
    pass


class ExtractionError(ArchiveError):
    """Failed to unpack archive entries into the scratch directory."""
    pass


class PublishError(ArchiveError):
    """Failed to move extracted content into the destination."""
    pass
