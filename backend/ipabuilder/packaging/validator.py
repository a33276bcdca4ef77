"""
Structural validation of generated archives.

Reopens the written .ipa and confirms the Payload/<App>.app/Info.plist
entry is present, catching assembly mistakes before success is reported.
"""

import logging
import zipfile
from pathlib import Path

from .errors import ArchiveFormatError, InvalidArchiveStructureError, PackagingIOError
from .models import BUNDLE_EXTENSION, MARKER_FILE, PAYLOAD_DIR

logger = logging.getLogger(__name__)

MARKER_PREFIX = f"{PAYLOAD_DIR}/"
MARKER_SUFFIX = f"{BUNDLE_EXTENSION}/{MARKER_FILE}"


def is_marker_entry(name: str) -> bool:
    return name.startswith(MARKER_PREFIX) and name.endswith(MARKER_SUFFIX)


def validate_archive(archive_path: Path) -> str:
    """
    Check that an archive contains a Payload/<App>.app/Info.plist entry.

    Returns:
        Name of the first matching marker entry

    Raises:
        ArchiveFormatError: If the file is not a readable zip archive
        PackagingIOError: If the file cannot be opened
        InvalidArchiveStructureError: If no marker entry exists
    """
    try:
        with zipfile.ZipFile(archive_path) as archive:
            names = archive.namelist()
    except zipfile.BadZipFile as e:
        raise ArchiveFormatError(archive_path, str(e)) from e
    except OSError as e:
        raise PackagingIOError(archive_path, str(e)) from e

    for name in names:
        if is_marker_entry(name):
            logger.debug(f"Validated {archive_path.name}: found {name}")
            return name

    raise InvalidArchiveStructureError(
        f"Missing {PAYLOAD_DIR}/<App>{BUNDLE_EXTENSION}/{MARKER_FILE}"
    )
