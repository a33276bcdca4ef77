"""
Candidate filtering for watched paths.

Only Runner.app*.zip archives (any case) are eligible for repackaging.
"""

from pathlib import Path
from typing import Iterable, List

CANDIDATE_PREFIX = "runner.app"
CANDIDATE_EXTENSION = ".zip"


def is_candidate_archive(path: Path) -> bool:
    """
    Check whether a changed path should be repackaged.

    The path must be an existing file whose name, compared
    case-insensitively, starts with 'runner.app' and ends with '.zip'.
    """
    if not path.is_file():
        return False
    name = path.name.lower()
    return name.startswith(CANDIDATE_PREFIX) and name.endswith(CANDIDATE_EXTENSION)


def unique_paths(paths: Iterable[Path]) -> List[Path]:
    """Drop repeated paths, keeping first-seen order."""
    seen = set()
    result = []
    for path in paths:
        if path in seen:
            continue
        seen.add(path)
        result.append(path)
    return result
