"""MIME type detection using filetype library (pure Python, cross-platform)."""

import filetype

UNKNOWN_MIME_TYPE = 'application/octet-stream'

# Base types that say nothing about the content
BASE_MIME_TYPES = frozenset({
    'all/all',
    'all/allfiles',
    'inode/directory',
    'text/plain',
    UNKNOWN_MIME_TYPE,
})

# Child -> parent classification. Formats built on top of a container
# resolve to the container itself, e.g. an OpenDocument text is a zip.
PARENT_MIME_TYPES = {
    'application/epub+zip': 'application/zip',
    'application/java-archive': 'application/zip',
    'application/vnd.android.package-archive': 'application/zip',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document': 'application/zip',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet': 'application/zip',
    'application/vnd.openxmlformats-officedocument.presentationml.presentation': 'application/zip',
    'application/vnd.oasis.opendocument.text': 'application/zip',
    'application/vnd.oasis.opendocument.spreadsheet': 'application/zip',
    'application/vnd.oasis.opendocument.presentation': 'application/zip',
    'application/x-deb': 'application/x-unix-archive',
    'application/zip': UNKNOWN_MIME_TYPE,
    'application/x-tar': UNKNOWN_MIME_TYPE,
    'application/x-unix-archive': UNKNOWN_MIME_TYPE,
    'application/vnd.ms-cab-compressed': UNKNOWN_MIME_TYPE,
    'application/gzip': UNKNOWN_MIME_TYPE,
    'application/x-xz': UNKNOWN_MIME_TYPE,
    'application/x-bzip2': UNKNOWN_MIME_TYPE,
    'application/x-msdownload': UNKNOWN_MIME_TYPE,
}


def detect_mime_type(data: bytes) -> str:
    """
    Detect the MIME type of a buffer by its magic bytes.

    Uses the filetype library which reads file signatures without
    requiring external dependencies like libmagic.

    Args:
        data: Leading bytes of a file

    Returns:
        MIME type string (e.g., 'application/zip')
        Returns 'application/octet-stream' if type cannot be determined
    """
    kind = filetype.guess(data)
    if kind is not None:
        return kind.mime
    return UNKNOWN_MIME_TYPE


def normalize_mime_type(mime_type: str) -> str:
    """
    Walk up the classification chain to the most general informative type.

    Stops before the first ancestor that is one of the uninformative base
    types, so 'application/epub+zip' becomes 'application/zip' while
    'application/zip' stays as it is.

    Args:
        mime_type: MIME type string

    Returns:
        Normalized MIME type string
    """
    seen = {mime_type}
    while True:
        parent = PARENT_MIME_TYPES.get(mime_type)
        if parent is None or parent in BASE_MIME_TYPES or parent in seen:
            return mime_type
        seen.add(parent)
        mime_type = parent


def sniff_mime_type(data: bytes) -> str:
    """Detect and normalize the MIME type of a buffer."""
    return normalize_mime_type(detect_mime_type(data))
