"""
Packaging error hierarchy.

All errors inherit from PackagingError for easy catching.
Subclasses group failures by kind: configuration, I/O, archive format,
and structure. Every error carries the offending path or name.
"""

from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]


class PackagingError(Exception):
    """Base exception for all packaging failures."""
    pass


# ----------------------------------------------------------------------------
# Configuration errors (checked before any filesystem work)
# ----------------------------------------------------------------------------

class PackagingConfigError(PackagingError):
    """Raised when a packaging request is invalid."""
    pass


class InputFileNotFoundError(PackagingConfigError):
    """Raised when the source archive does not exist."""

    def __init__(self, path: PathLike):
        self.path = Path(path)
        super().__init__(f"Input file '{self.path}' not found")


class OutputDirectoryInvalidError(PackagingConfigError):
    """Raised when the output directory is missing or not a directory."""

    def __init__(self, path: PathLike):
        self.path = Path(path)
        super().__init__(
            f"Output directory '{self.path}' not found or is not a directory"
        )


class InvalidOutputNameError(PackagingConfigError):
    """Raised when the output archive file name is unusable."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Final IPA file name is invalid: '{name}' ({reason})")


# ----------------------------------------------------------------------------
# I/O errors
# ----------------------------------------------------------------------------

class PackagingIOError(PackagingError):
    """Raised when reading, writing or copying a path fails."""

    def __init__(self, path: PathLike, reason: str, message: Optional[str] = None):
        self.path = Path(path)
        self.reason = reason
        super().__init__(message or f"I/O error at '{self.path}': {reason}")


class PayloadCreationError(PackagingIOError):
    """Raised when the Payload directory cannot be created."""

    def __init__(self, path: PathLike, reason: str = "cannot create directory"):
        super().__init__(
            path, reason, f"Failed to create Payload directory at {path}: {reason}"
        )


class CopyToPayloadError(PackagingIOError):
    """Raised when the bundle cannot be copied into the Payload directory."""

    def __init__(self, path: PathLike, reason: str = "copy failed"):
        super().__init__(
            path,
            reason,
            f"Failed to copy .app bundle to Payload directory: {path} ({reason})",
        )


# ----------------------------------------------------------------------------
# Archive format errors
# ----------------------------------------------------------------------------

class ArchiveFormatError(PackagingError):
    """Raised when an archive is malformed or cannot be read or written."""

    def __init__(self, path: PathLike, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Zip error for '{self.path}': {reason}")


# ----------------------------------------------------------------------------
# Structural errors
# ----------------------------------------------------------------------------

class PackagingStructureError(PackagingError):
    """Raised when input or output does not have the expected layout."""
    pass


class BundleNotFoundError(PackagingStructureError):
    """Raised when no .app bundle with an Info.plist is found."""

    def __init__(self, root: PathLike):
        self.root = Path(root)
        super().__init__(
            "The structure of the zip file is not as expected. "
            f"Could not find a top-level .app directory or a nested one in {self.root}"
        )


class InvalidArchiveStructureError(PackagingStructureError):
    """Raised when a generated archive fails structural validation."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Generated IPA has invalid structure: {reason}")
