"""
One-shot packaging endpoint.

Error mapping:
    InputFileNotFoundError -> 404
    PackagingConfigError -> 400
    PackagingStructureError, ArchiveFormatError -> 422
    PackagingIOError -> 500
"""

import logging

from fastapi import APIRouter, HTTPException, Request

from ..packaging import PackagingRequest, PackagingResult
from ..packaging.errors import (
    ArchiveFormatError,
    InputFileNotFoundError,
    PackagingConfigError,
    PackagingError,
    PackagingStructureError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/package", tags=["packaging"])


def status_for_packaging_error(e: PackagingError) -> int:
    """HTTP status code for a packaging failure."""
    if isinstance(e, InputFileNotFoundError):
        return 404
    if isinstance(e, PackagingConfigError):
        return 400
    if isinstance(e, (PackagingStructureError, ArchiveFormatError)):
        return 422
    return 500


@router.post("", response_model=PackagingResult)
def package_endpoint(body: PackagingRequest, request: Request):
    """
    Repackage a zipped .app bundle into an .ipa.

    Runs synchronously; the response is sent once the archive has been
    built and validated.

    Raises:
        404: Source archive not found
        400: Invalid output directory or output name
        422: No bundle found, or the archive is malformed
        500: Filesystem failure
    """
    pipeline = request.app.state.pipeline
    try:
        return pipeline.package(body)
    except PackagingError as e:
        logger.error(f"Packaging failed for {body.source_path}: {e}")
        raise HTTPException(status_code=status_for_packaging_error(e), detail=str(e))
