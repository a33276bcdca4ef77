"""
Packaging data models and layout constants.

Requests and results use Pydantic with strict validation and no silent
coercion. Scratch-only records (bundle candidates, archive entries) are
plain frozen dataclasses.
"""

import zipfile
from dataclasses import dataclass
from pathlib import Path
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InvalidOutputNameError


# Bundle recognition
BUNDLE_EXTENSION = ".app"
MARKER_FILE = "Info.plist"
MAX_SEARCH_DEPTH = 3

# Output layout
PAYLOAD_DIR = "Payload"
ARCHIVE_EXTENSION = ".ipa"

# Entry permissions
DIR_PERMISSIONS = 0o755
EXECUTABLE_PERMISSIONS = 0o755
FILE_PERMISSIONS = 0o644
DYLIB_EXTENSIONS = frozenset({".dylib"})


def check_output_name(name: str) -> str:
    """
    Validate an output archive file name.

    Returns:
        The stripped name

    Raises:
        InvalidOutputNameError: If the name is empty, lacks the .ipa
            extension (case-insensitive) or contains a path separator
    """
    stripped = name.strip()
    if not stripped:
        raise InvalidOutputNameError(name, "name is empty")
    if not stripped.lower().endswith(ARCHIVE_EXTENSION):
        raise InvalidOutputNameError(name, f"must end with {ARCHIVE_EXTENSION}")
    if "/" in stripped or "\\" in stripped:
        raise InvalidOutputNameError(name, "must be a file name, not a path")
    return stripped


class PackagingRequest(BaseModel):
    """
    A single repackaging request.

    Immutable. Filesystem invariants (source exists, output directory
    exists, output name is well-formed) are checked by the pipeline
    before any scratch area is created.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    source_path: str = Field(..., description="Path to the source .zip archive")
    output_dir: str = Field(..., description="Directory that receives the .ipa")
    app_name: str = Field(..., description="Display name used in status output")
    output_name: str = Field(..., description="File name of the generated .ipa")

    @field_validator("output_name")
    @classmethod
    def strip_output_name(cls, v: str) -> str:
        return v.strip()


class PackagingResult(BaseModel):
    """Outcome of a successful packaging run."""

    model_config = ConfigDict(extra="forbid")

    archive_path: str
    bundle_name: str
    entry_count: int
    size_bytes: int
    duration_ms: float


@dataclass(frozen=True)
class BundleCandidate:
    """A qualifying .app directory found while walking an extracted tree."""

    path: Path
    relative_path: str
    depth: int


@dataclass(frozen=True)
class ArchiveEntry:
    """One entry written to the output archive."""

    name: str
    is_dir: bool
    permissions: int
    compression: int = zipfile.ZIP_DEFLATED
