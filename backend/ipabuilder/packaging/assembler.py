"""
Payload assembler.

Builds the normalized Payload/<Bundle>.app tree inside a scratch root.
"""

import logging
import shutil
from pathlib import Path

from .errors import CopyToPayloadError, PayloadCreationError
from .models import PAYLOAD_DIR

logger = logging.getLogger(__name__)


def assemble_payload(bundle: Path, scratch_root: Path) -> Path:
    """
    Copy a located bundle into <scratch_root>/Payload/<bundle name>.

    The bundle is copied, not moved: the extraction area is cleaned up
    independently. Intermediate folders of the source tree are dropped.

    Returns:
        Path of the copied bundle inside the Payload directory

    Raises:
        PayloadCreationError: If the Payload directory cannot be created
        CopyToPayloadError: If any part of the copy fails
    """
    payload_dir = scratch_root / PAYLOAD_DIR
    try:
        payload_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PayloadCreationError(payload_dir, str(e)) from e
    logger.debug(f"Created Payload directory: {payload_dir}")

    destination = payload_dir / bundle.name
    try:
        shutil.copytree(bundle, destination)
    except OSError as e:
        # shutil.Error is an OSError subclass
        logger.error(f"Failed to copy {bundle} to {destination}: {e}")
        raise CopyToPayloadError(destination, str(e)) from e

    logger.info(f"Copied '{bundle.name}' to '{destination}'")
    return destination
