"""
Repackaging pipeline — orchestration for a single request.

Steps (each depends on the previous one succeeding):
1. Validate the request (before any filesystem work)
2. Extract the source archive into a scratch area
3. Locate the .app bundle
4. Assemble Payload/<Bundle>.app in a second scratch area
5. Build the .ipa directly into the output directory
6. Validate the generated archive

Both scratch areas are removed on every exit path.
"""

import logging
import tempfile
import time
from pathlib import Path
from typing import Optional, Union

from .archive import build_archive
from .assembler import assemble_payload
from .errors import (
    InputFileNotFoundError,
    InvalidArchiveStructureError,
    OutputDirectoryInvalidError,
)
from .extractor import extract_archive
from .locator import locate_bundle
from .models import PackagingRequest, PackagingResult, check_output_name
from .validator import validate_archive

logger = logging.getLogger(__name__)


class PackagingPipeline:
    """
    Synchronous, single-threaded repackaging pipeline.

    Not safe to run concurrently for the same output file name (last
    writer wins). Concurrent runs with different output names are
    independent since each run uses its own scratch areas.
    """

    def __init__(self, scratch_dir: Optional[Union[str, Path]] = None):
        """
        Initialize pipeline.

        Args:
            scratch_dir: Parent directory for temporary areas
                (defaults to the system temp directory)
        """
        self.scratch_dir = str(scratch_dir) if scratch_dir is not None else None

    def validate_request(self, request: PackagingRequest) -> Path:
        """
        Check request invariants.

        Returns:
            Final output archive path

        Raises:
            InputFileNotFoundError: If the source archive does not exist
            OutputDirectoryInvalidError: If the output directory is invalid
            InvalidOutputNameError: If the output name is malformed
        """
        source = Path(request.source_path)
        if not source.is_file():
            raise InputFileNotFoundError(source)

        output_dir = Path(request.output_dir)
        if not output_dir.is_dir():
            raise OutputDirectoryInvalidError(output_dir)

        return output_dir / check_output_name(request.output_name)

    def package(self, request: PackagingRequest) -> PackagingResult:
        """
        Repackage a zipped .app bundle into an .ipa.

        Re-running with an identical request overwrites the previous output.

        Returns:
            PackagingResult describing the generated archive

        Raises:
            PackagingError: Any subclass, from the first failing step
        """
        source = Path(request.source_path)
        logger.info(f"Starting IPA generation for '{request.app_name}' from '{source}'")
        started = time.monotonic()

        output_path = self.validate_request(request)

        with tempfile.TemporaryDirectory(prefix="ipabuilder-extract-", dir=self.scratch_dir) as extract_tmp:
            extract_root = Path(extract_tmp)
            logger.debug(f"Created extraction temp dir: {extract_root}")

            extract_archive(source, extract_root)
            bundle = locate_bundle(extract_root)

            with tempfile.TemporaryDirectory(prefix="ipabuilder-build-", dir=self.scratch_dir) as build_tmp:
                build_root = Path(build_tmp)
                logger.debug(f"Created build temp dir: {build_root}")

                assemble_payload(bundle, build_root)
                entries = build_archive(build_root, output_path)

        try:
            validate_archive(output_path)
        except InvalidArchiveStructureError:
            logger.error(f"Removing structurally invalid archive: {output_path}")
            output_path.unlink()
            raise

        duration_ms = (time.monotonic() - started) * 1000
        result = PackagingResult(
            archive_path=str(output_path),
            bundle_name=bundle.name,
            entry_count=len(entries),
            size_bytes=output_path.stat().st_size,
            duration_ms=duration_ms,
        )
        logger.info(
            f"IPA for '{request.app_name}' generated in {duration_ms / 1000:.2f}s at: {output_path}"
        )
        return result


def package(request: PackagingRequest) -> PackagingResult:
    """Run a request through a default PackagingPipeline."""
    return PackagingPipeline().package(request)
