"""Shared fixtures: archives built on the fly."""

import io
import struct
import tarfile
import zipfile
import zlib
from pathlib import Path
from typing import Dict, Optional

import pytest


# 1980-01-01, the earliest DOS date
DOS_DATE_1980_01_01 = 0x21


def build_zip(path: Path, entries: Dict[str, Optional[bytes]]) -> Path:
    """Write a ZIP archive. ``None`` values become directory entries."""
    with zipfile.ZipFile(path, 'w') as zf:
        for name, data in entries.items():
            if data is None:
                zf.writestr(zipfile.ZipInfo(name.rstrip("/") + "/"), b"")
            else:
                zf.writestr(name, data)
    return path


def build_tar(path: Path, entries: Dict[str, Optional[bytes]], mode: str = 'w') -> Path:
    """Write a tarball. ``None`` values become directory entries."""
    with tarfile.open(path, mode) as tf:
        for name, data in entries.items():
            info = tarfile.TarInfo(name=name)
            if data is None:
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                tf.addfile(info)
            else:
                info.size = len(data)
                info.mode = 0o644
                tf.addfile(info, io.BytesIO(data))
    return path


def ar_member(name: str, data: bytes) -> bytes:
    """Encode one ar member: 60-byte header, data, even padding."""
    header = (
        name.encode().ljust(16)
        + b"0".ljust(12)
        + b"0".ljust(6)
        + b"0".ljust(6)
        + b"100644".ljust(8)
        + str(len(data)).encode().ljust(10)
        + b"`\n"
    )
    padding = b"\n" if len(data) % 2 else b""
    return header + data + padding


def build_ar(path: Path, entries: Dict[str, bytes]) -> Path:
    """Write a BSD-style ar archive with short member names."""
    content = b"!<arch>\n" + b"".join(ar_member(name, data) for name, data in entries.items())
    path.write_bytes(content)
    return path


def build_cab(entries: Dict[str, bytes], compress: bool = False, block_size: int = 32768) -> bytes:
    """Return the bytes of a single-folder cabinet holding ``entries``.

    With ``compress`` the folder is MSZIP-compressed, otherwise stored.
    """
    payload = b"".join(entries.values())
    blocks = []
    history = b""
    for start in range(0, len(payload), block_size):
        chunk = payload[start:start + block_size]
        if compress:
            if history:
                compressor = zlib.compressobj(9, zlib.DEFLATED, -15, zdict=history)
            else:
                compressor = zlib.compressobj(9, zlib.DEFLATED, -15)
            packed = b"CK" + compressor.compress(chunk) + compressor.flush()
            history = (history + chunk)[-32768:]
        else:
            packed = chunk
        blocks.append(struct.pack("<IHH", 0, len(packed), len(chunk)) + packed)

    file_entries = []
    folder_offset = 0
    for name, data in entries.items():
        attributes = 0x20 if name.isascii() else 0xA0
        file_entries.append(
            struct.pack("<IIHHHH", len(data), folder_offset, 0, DOS_DATE_1980_01_01, 0, attributes)
            + name.encode("utf-8") + b"\0"
        )
        folder_offset += len(data)

    files_offset = 36 + 8
    data_offset = files_offset + sum(len(entry) for entry in file_entries)
    total = data_offset + sum(len(block) for block in blocks)

    header = struct.pack(
        "<4sIIIIIBBHHHHH",
        b"MSCF", 0, total, 0, files_offset, 0, 3, 1, 1, len(entries), 0, 0, 0
    )
    folder = struct.pack("<IHH", data_offset, len(blocks), 1 if compress else 0)
    return header + folder + b"".join(file_entries) + b"".join(blocks)


def build_pe(overlay: bytes = b"", section_data: bytes = b"\x90" * 32) -> bytes:
    """Return a minimal PE32 image with one section followed by ``overlay``.

    Headers and the section are padded to the 0x200 file alignment, so
    the overlay always starts at offset 0x400.
    """
    pe_offset = 0x40
    dos_header = b"MZ" + b"\0" * (0x3C - 2) + struct.pack("<I", pe_offset)
    coff = struct.pack("<HHIIIHH", 0x14C, 1, 0, 0, 0, 224, 0x0102)
    optional = struct.pack(
        "<HBBIIIIIIIIIHHHHHHIIIIHHIIIIII",
        0x10B, 0, 0,
        0x200, 0, 0, 0x1000, 0x1000, 0, 0x400000, 0x1000, 0x200,
        4, 0, 0, 0, 4, 0,
        0, 0x2000, 0x200, 0,
        3, 0,
        0x100000, 0x1000, 0x100000, 0x1000, 0, 16
    ) + b"\0" * 16 * 8
    section = struct.pack(
        "<8sIIIIIIHHI",
        b".text", 0x200, 0x1000, 0x200, 0x200, 0, 0, 0, 0, 0x60000020
    )
    headers = (dos_header + b"PE\0\0" + coff + optional + section).ljust(0x200, b"\0")
    return headers + section_data.ljust(0x200, b"\0") + overlay


@pytest.fixture
def destination(tmp_path):
    """Empty destination directory."""
    path = tmp_path / "dest"
    path.mkdir()
    return path


@pytest.fixture
def source_dir(tmp_path):
    """Directory holding the test archives."""
    path = tmp_path / "src"
    path.mkdir()
    return path
