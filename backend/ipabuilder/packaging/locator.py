"""
Bundle locator.

Walks an extracted tree and picks the .app bundle to package.
"""

import logging
import os
from pathlib import Path
from typing import List

from .errors import BundleNotFoundError
from .models import BUNDLE_EXTENSION, MARKER_FILE, MAX_SEARCH_DEPTH, BundleCandidate

logger = logging.getLogger(__name__)


def is_bundle_dir(path: Path) -> bool:
    """A bundle is a *.app directory that directly contains Info.plist."""
    return (
        path.name.endswith(BUNDLE_EXTENSION)
        and path.is_dir()
        and (path / MARKER_FILE).is_file()
    )


def find_bundle_candidates(root: Path, max_depth: int = MAX_SEARCH_DEPTH) -> List[BundleCandidate]:
    """
    Collect every qualifying bundle within max_depth levels below root.

    The walk continues beneath candidates, so an extension bundle nested
    inside an app is also reported.

    Returns:
        Candidates sorted by relative POSIX path (deterministic order)
    """
    candidates = []

    for dirpath, dirnames, _ in os.walk(root):
        current = Path(dirpath)
        depth = len(current.relative_to(root).parts)

        if depth >= max_depth:
            # Children would exceed the bound
            dirnames[:] = []

        for name in dirnames:
            child = current / name
            if is_bundle_dir(child):
                relative = child.relative_to(root).as_posix()
                logger.debug(f"Found candidate .app bundle: {relative}")
                candidates.append(
                    BundleCandidate(path=child, relative_path=relative, depth=depth + 1)
                )

    return sorted(candidates, key=lambda c: c.relative_path)


def locate_bundle(root: Path, max_depth: int = MAX_SEARCH_DEPTH) -> Path:
    """
    Select the bundle to package.

    When several candidates qualify, the lexicographically smallest
    relative path wins.

    Raises:
        BundleNotFoundError: If no candidate exists within max_depth
    """
    candidates = find_bundle_candidates(root, max_depth)
    if not candidates:
        raise BundleNotFoundError(root)

    selected = candidates[0]
    if len(candidates) > 1:
        logger.warning(
            f"Found {len(candidates)} .app bundles; using '{selected.relative_path}'"
        )
    logger.info(f"Identified app bundle to be packaged: {selected.relative_path}")
    return selected.path
