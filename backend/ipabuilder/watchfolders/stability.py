"""
File stability detection.

Uses polling to determine when a file has finished copying/writing.
A file is considered stable when two consecutive size reads agree and the
file can be opened for reading.
"""

import time
from pathlib import Path
from typing import Callable, Dict, Tuple

from .models import FileStabilityCheck
from .errors import FileStabilityError

DEFAULT_CHECK_INTERVAL = 0.4
DEFAULT_STABILITY_TIMEOUT = 15.0

# Back-off while a file is missing or unreadable
MISSING_FILE_INTERVAL = 0.25


def _can_open(path: Path) -> bool:
    try:
        with open(path, "rb"):
            return True
    except OSError:
        return False


class FileStabilityChecker:
    """
    Poll-based file stability detector.

    Tracks the last observed size per file. Only the watch loop reads or
    writes this table.

    Configuration:
        check_interval: Seconds between size checks (default: 0.4)
        timeout: Seconds to wait for stability before giving up (default: 15)
        sleep/clock: Injectable for tests
    """

    def __init__(
        self,
        check_interval: float = DEFAULT_CHECK_INTERVAL,
        timeout: float = DEFAULT_STABILITY_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.check_interval = check_interval
        self.timeout = timeout
        self._sleep = sleep
        self._clock = clock

        # {resolved path: (last size, reads at that size)}
        self._file_state: Dict[str, Tuple[int, int]] = {}

    def check_stability(self, path: Path) -> FileStabilityCheck:
        """
        Check if a file is stable.

        A file is considered stable when:
        1. File exists
        2. Its size equals the size recorded by the previous check
        3. It can be opened for reading
        """
        path_str = str(path.resolve())

        try:
            current_size = path.stat().st_size
        except OSError as e:
            # File disappeared or is not accessible - remove from tracking
            self._file_state.pop(path_str, None)
            return FileStabilityCheck(
                path=path_str,
                is_stable=False,
                size_bytes=None,
                check_count=0,
                reason=f"File not accessible: {e}",
            )

        if path_str not in self._file_state:
            # First check - record size
            self._file_state[path_str] = (current_size, 1)
            return FileStabilityCheck(
                path=path_str,
                is_stable=False,
                size_bytes=current_size,
                check_count=1,
                reason="First stability check",
            )

        prev_size, prev_count = self._file_state[path_str]

        if current_size != prev_size:
            # Size changed - reset count
            self._file_state[path_str] = (current_size, 1)
            return FileStabilityCheck(
                path=path_str,
                is_stable=False,
                size_bytes=current_size,
                check_count=1,
                reason=f"File size changed (prev: {prev_size}, current: {current_size})",
            )

        new_count = prev_count + 1
        self._file_state[path_str] = (current_size, new_count)

        if not _can_open(path):
            return FileStabilityCheck(
                path=path_str,
                is_stable=False,
                size_bytes=current_size,
                check_count=new_count,
                reason="File cannot be opened for reading",
            )

        return FileStabilityCheck(
            path=path_str,
            is_stable=True,
            size_bytes=current_size,
            check_count=new_count,
            reason=None,
        )

    def wait_until_ready(self, path: Path) -> FileStabilityCheck:
        """
        Poll a file until it is stable or the timeout elapses.

        Not interruptible: the caller is blocked for up to the timeout.

        Returns:
            The stable FileStabilityCheck

        Raises:
            FileStabilityError: On timeout
        """
        self.reset_tracking(path)
        started = self._clock()
        last = None

        while self._clock() - started < self.timeout:
            last = self.check_stability(path)
            if last.is_stable:
                self.reset_tracking(path)
                return last
            if last.size_bytes is None:
                self._sleep(MISSING_FILE_INTERVAL)
            else:
                self._sleep(self.check_interval)

        self.reset_tracking(path)
        reason = "timeout"
        if last is not None and last.reason:
            reason = f"timeout: {last.reason}"
        raise FileStabilityError(str(path), reason)

    def reset_tracking(self, path: Path) -> None:
        """Reset stability tracking for a file."""
        self._file_state.pop(str(path.resolve()), None)

    def clear_all_tracking(self) -> None:
        """Clear all file stability tracking."""
        self._file_state.clear()

    def tracked_sizes(self) -> Dict[str, int]:
        """Snapshot of the last observed size per tracked file."""
        return {path: size for path, (size, _) in self._file_state.items()}
