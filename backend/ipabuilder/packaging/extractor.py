"""
Source archive extraction.

Unpacks the input .zip into a scratch directory for bundle discovery.
"""

import logging
import zipfile
from pathlib import Path

from .errors import ArchiveFormatError, PackagingIOError

logger = logging.getLogger(__name__)


def extract_archive(source: Path, destination: Path) -> int:
    """
    Extract every member of a zip archive into destination.

    Member names are sanitised by zipfile (absolute paths and '..'
    components are dropped), so nothing is written outside destination.

    Returns:
        Number of archive members extracted

    Raises:
        ArchiveFormatError: If the source is not a readable zip archive
        PackagingIOError: If reading the source or writing a member fails
    """
    try:
        with zipfile.ZipFile(source) as archive:
            members = archive.infolist()
            archive.extractall(destination)
    except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        raise ArchiveFormatError(source, str(e)) from e
    except OSError as e:
        raise PackagingIOError(e.filename or source, str(e)) from e

    logger.info(f"Extracted '{source.name}' ({len(members)} entries) to '{destination}'")
    return len(members)
