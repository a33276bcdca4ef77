"""
Archive builder.

Walks an assembled scratch root and writes the .ipa archive.

Entry policy:
- Names are relative to the scratch root, so every entry starts with Payload/
- Directories are stored (no compression) with mode 0755
- Files are deflated; mode 0755 for Mach-O images and dylibs, 0644 otherwise
"""

import logging
import os
import shutil
import stat
import zipfile
from pathlib import Path, PurePath
from typing import Iterator, List, Tuple

from .errors import ArchiveFormatError, PackagingIOError
from .models import (
    DIR_PERMISSIONS,
    DYLIB_EXTENSIONS,
    EXECUTABLE_PERMISSIONS,
    FILE_PERMISSIONS,
    ArchiveEntry,
)

logger = logging.getLogger(__name__)

# Mach-O magic numbers read big-endian from the first four bytes:
# 32/64-bit thin images in both byte orders, plus universal (fat) binaries.
MACHO_MAGICS = frozenset({
    0xFEEDFACE,  # MH_MAGIC
    0xFEEDFACF,  # MH_MAGIC_64
    0xCEFAEDFE,  # MH_CIGAM
    0xCFFAEDFE,  # MH_CIGAM_64
    0xCAFEBABE,  # FAT_MAGIC
    0xBEBAFECA,  # FAT_CIGAM
})

MAGIC_LENGTH = 4

# Unix "made by" system for zip entries
ZIP_SYSTEM_UNIX = 3


def is_native_executable(prefix: bytes) -> bool:
    """Return True if prefix starts with a Mach-O magic number."""
    if len(prefix) < MAGIC_LENGTH:
        return False
    return int.from_bytes(prefix[:MAGIC_LENGTH], "big") in MACHO_MAGICS


def permissions_for_file(path: PurePath, prefix: bytes) -> int:
    """Derive the Unix mode for a file entry from its content and extension."""
    if is_native_executable(prefix):
        return EXECUTABLE_PERMISSIONS
    if path.suffix in DYLIB_EXTENSIONS:
        return EXECUTABLE_PERMISSIONS
    return FILE_PERMISSIONS


def entry_name(relative: PurePath, is_dir: bool) -> str:
    """
    Build an archive entry name from a relative path.

    Forward slashes regardless of platform; directories get a trailing
    slash. The root itself maps to an empty name.
    """
    name = "/".join(part for part in relative.parts if part not in ("", "."))
    if is_dir and name and not name.endswith("/"):
        name += "/"
    return name


def _read_prefix(path: Path) -> bytes:
    with open(path, "rb") as f:
        return f.read(MAGIC_LENGTH)


def iter_archive_entries(root: Path) -> Iterator[Tuple[ArchiveEntry, Path]]:
    """
    Walk root and describe one archive entry per filesystem node.

    Traversal is sorted, and a directory is always yielded before its
    contents. Nodes with an empty relative name are skipped.

    Yields:
        (entry, absolute path) pairs
    """
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        current = Path(dirpath)
        relative_dir = current.relative_to(root)

        name = entry_name(relative_dir, is_dir=True)
        if name:
            yield (
                ArchiveEntry(
                    name=name,
                    is_dir=True,
                    permissions=DIR_PERMISSIONS,
                    compression=zipfile.ZIP_STORED,
                ),
                current,
            )

        for filename in sorted(filenames):
            path = current / filename
            name = entry_name(relative_dir / filename, is_dir=False)
            if not name:
                continue
            try:
                prefix = _read_prefix(path)
            except OSError as e:
                raise PackagingIOError(path, str(e)) from e
            yield (
                ArchiveEntry(
                    name=name,
                    is_dir=False,
                    permissions=permissions_for_file(path, prefix),
                    compression=zipfile.ZIP_DEFLATED,
                ),
                path,
            )


def _zip_info(entry: ArchiveEntry, source: Path) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo.from_file(source, entry.name, strict_timestamps=False)
    file_type = stat.S_IFDIR if entry.is_dir else stat.S_IFREG
    info.create_system = ZIP_SYSTEM_UNIX
    info.external_attr = (file_type | entry.permissions) << 16
    if entry.is_dir:
        # MS-DOS directory flag
        info.external_attr |= 0x10
    info.compress_type = entry.compression
    return info


def build_archive(root: Path, output_path: Path) -> List[ArchiveEntry]:
    """
    Write every node under root into a new zip archive at output_path.

    An existing file at output_path is overwritten. If the build aborts,
    the partially written archive is left in place.

    Returns:
        The entries written, in archive order

    Raises:
        PackagingIOError: If a source file or the output cannot be accessed
        ArchiveFormatError: If the zip layer rejects an entry
    """
    written: List[ArchiveEntry] = []
    logger.info(f"Starting compression of {root} to {output_path}")

    try:
        with zipfile.ZipFile(output_path, "w") as archive:
            for entry, source in iter_archive_entries(root):
                info = _zip_info(entry, source)
                if entry.is_dir:
                    logger.debug(f"Adding directory to zip: {entry.name}")
                    archive.writestr(info, b"")
                else:
                    logger.debug(f"Adding file to zip: {entry.name} ({oct(entry.permissions)})")
                    with open(source, "rb") as src, archive.open(info, "w") as dest:
                        shutil.copyfileobj(src, dest)
                written.append(entry)
    except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        raise ArchiveFormatError(output_path, str(e)) from e
    except OSError as e:
        raise PackagingIOError(e.filename or output_path, str(e)) from e

    logger.info(f"Successfully created IPA: {output_path} ({len(written)} entries)")
    return written
