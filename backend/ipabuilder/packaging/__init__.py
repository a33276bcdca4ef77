"""
Packaging — zipped .app bundle to .ipa repackaging.

Public API:
    PackagingRequest — Immutable request model
    PackagingPipeline — Orchestration: extract → locate → assemble → build → validate
    package — Convenience wrapper around a default pipeline
"""

from .errors import (
    PackagingError,
    PackagingConfigError,
    InputFileNotFoundError,
    OutputDirectoryInvalidError,
    InvalidOutputNameError,
    PackagingIOError,
    PayloadCreationError,
    CopyToPayloadError,
    ArchiveFormatError,
    PackagingStructureError,
    BundleNotFoundError,
    InvalidArchiveStructureError,
)
from .models import (
    PackagingRequest,
    PackagingResult,
    BundleCandidate,
    ArchiveEntry,
    check_output_name,
)
from .archive import build_archive, is_native_executable, permissions_for_file
from .assembler import assemble_payload
from .extractor import extract_archive
from .locator import find_bundle_candidates, locate_bundle
from .validator import validate_archive
from .pipeline import PackagingPipeline, package

__all__ = [
    # Errors
    "PackagingError",
    "PackagingConfigError",
    "InputFileNotFoundError",
    "OutputDirectoryInvalidError",
    "InvalidOutputNameError",
    "PackagingIOError",
    "PayloadCreationError",
    "CopyToPayloadError",
    "ArchiveFormatError",
    "PackagingStructureError",
    "BundleNotFoundError",
    "InvalidArchiveStructureError",
    # Models
    "PackagingRequest",
    "PackagingResult",
    "BundleCandidate",
    "ArchiveEntry",
    "check_output_name",
    # Steps
    "extract_archive",
    "find_bundle_candidates",
    "locate_bundle",
    "assemble_payload",
    "build_archive",
    "is_native_executable",
    "permissions_for_file",
    "validate_archive",
    # Orchestration
    "PackagingPipeline",
    "package",
]
