"""
Watch folder runner — unattended repackaging.

Background loop:
    Watching → (candidate stable) → Generating → Watching ... → Stopped

- Polls the change queue with a bounded wait (250 ms)
- Filters candidates (Runner.app*.zip), waits for write-stability
- Runs the packaging pipeline synchronously (blocks the loop)
- Reports every step on a one-way StatusChannel

Cancellation is cooperative: stop() sets a flag that the loop observes at
its next poll boundary. An in-flight stability wait or packaging call
always runs to completion first.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from ..packaging.errors import PackagingError
from ..packaging.models import PackagingRequest, PackagingResult
from ..packaging.pipeline import PackagingPipeline
from .channel import StatusChannel
from .errors import FileStabilityError, WatcherStartError
from .events import EventSource, EventSourceFactory, WatchdogEventSource
from .filters import is_candidate_archive, unique_paths
from .models import WatchConfig, WatchMessage, WatchMessageKind, validate_watch_config
from .stability import DEFAULT_CHECK_INTERVAL, DEFAULT_STABILITY_TIMEOUT, FileStabilityChecker

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.25

PackageFn = Callable[[PackagingRequest], PackagingResult]


@dataclass
class WatchState:
    """
    Mutable state owned by the watch loop.

    stop_event is the only field written from outside the loop (by stop()).
    """

    config: WatchConfig
    stop_event: threading.Event = field(default_factory=threading.Event)
    # Signature (size, mtime) of each archive already packaged
    processed: Dict[str, Tuple[int, float]] = field(default_factory=dict)


def _signature(path: Path) -> Optional[Tuple[int, float]]:
    try:
        st = path.stat()
    except OSError:
        return None
    return (st.st_size, st.st_mtime)


class WatchFolderRunner:
    """
    Handle for a running watch loop.

    Create with WatchFolderRunner.start(config). The caller drains status
    messages with try_recv()/drain() and ends the loop with stop().
    """

    def __init__(
        self,
        config: WatchConfig,
        package_fn: Optional[PackageFn] = None,
        event_source_factory: EventSourceFactory = WatchdogEventSource,
        stability_checker: Optional[FileStabilityChecker] = None,
        poll_interval: float = POLL_INTERVAL,
    ):
        self.state = WatchState(config=config)
        self.poll_interval = poll_interval
        self.stability_checker = stability_checker or FileStabilityChecker(
            check_interval=DEFAULT_CHECK_INTERVAL,
            timeout=DEFAULT_STABILITY_TIMEOUT,
        )
        self._package = package_fn or PackagingPipeline().package
        self._event_source_factory = event_source_factory
        self._events: "queue.Queue[Path]" = queue.Queue()
        self._channel = StatusChannel()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    def start(cls, config: WatchConfig, **kwargs) -> "WatchFolderRunner":
        """
        Validate config and spawn the background loop.

        Raises:
            WatchConfigError: If config is invalid (nothing is spawned)
        """
        validate_watch_config(config)
        runner = cls(config, **kwargs)
        runner._thread = threading.Thread(
            target=runner._run,
            daemon=True,
            name=f"watch-{Path(config.watch_dir).name}",
        )
        runner._thread.start()
        return runner

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Request the loop to stop and wait for it to exit.

        Returns:
            True if the loop has exited
        """
        self.state.stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            return not self._thread.is_alive()
        return True

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def config(self) -> WatchConfig:
        return self.state.config

    # ------------------------------------------------------------------
    # Receiving end
    # ------------------------------------------------------------------

    def try_recv(self) -> Optional[WatchMessage]:
        return self._channel.try_recv()

    def drain(self) -> List[WatchMessage]:
        return self._channel.drain()

    def close_receiver(self) -> None:
        """Stop listening; the loop shuts down on its next send or poll."""
        self._channel.close()

    # ------------------------------------------------------------------
    # Background loop
    # ------------------------------------------------------------------

    def _emit(self, kind: WatchMessageKind, message: str, **fields) -> bool:
        if kind in (WatchMessageKind.GENERATION_FAILED, WatchMessageKind.WATCHER_ERROR):
            logger.error(message)
        elif kind == WatchMessageKind.SKIPPED:
            logger.warning(message)
        else:
            logger.info(message)
        return self._channel.send(WatchMessage(kind=kind, message=message, **fields))

    def _should_exit(self) -> bool:
        return self.state.stop_event.is_set() or self._channel.closed

    def _run(self) -> None:
        cfg = self.state.config
        watch_dir = Path(cfg.watch_dir)

        if not self._emit(WatchMessageKind.STARTED, f"AutoCheck started. Watching: {watch_dir}"):
            return

        source: EventSource = self._event_source_factory(watch_dir, self._events)
        try:
            source.start()
        except Exception as e:
            if not isinstance(e, WatcherStartError):
                logger.exception(f"Unexpected error starting watcher on {watch_dir}")
            self._emit(WatchMessageKind.WATCHER_ERROR, f"AutoCheck watcher start error: {e}")
            return

        try:
            while not self._should_exit():
                batch = self._next_batch()
                for path in batch:
                    if self._should_exit():
                        break
                    if not self._process_path(path):
                        # Receiver gone
                        return
        finally:
            source.stop()

        self._emit(WatchMessageKind.STOPPED, "AutoCheck stopped.")

    def _next_batch(self) -> List[Path]:
        """Wait up to one poll interval, then coalesce every queued path."""
        try:
            first = self._events.get(timeout=self.poll_interval)
        except queue.Empty:
            return []
        paths = [first]
        while True:
            try:
                paths.append(self._events.get_nowait())
            except queue.Empty:
                break
        return unique_paths(paths)

    def _process_path(self, path: Path) -> bool:
        """
        Handle one changed path.

        Returns:
            False if the receiver closed the channel
        """
        if not is_candidate_archive(path):
            return True

        key = str(path.resolve())
        signature = _signature(path)
        if signature is not None and self.state.processed.get(key) == signature:
            return self._emit(
                WatchMessageKind.SKIPPED,
                f"Skipped (already packaged): {path}",
                path=str(path),
            )

        if not self._emit(
            WatchMessageKind.CANDIDATE_DETECTED,
            f"Detected candidate: {path}",
            path=str(path),
        ):
            return False

        try:
            self.stability_checker.wait_until_ready(path)
        except FileStabilityError as e:
            return self._emit(
                WatchMessageKind.SKIPPED,
                f"Skipped (not ready): {path} ({e.reason})",
                path=str(path),
            )

        return self._generate(path, key)

    def _generate(self, path: Path, key: str) -> bool:
        cfg = self.state.config
        request = PackagingRequest(
            source_path=str(path),
            output_dir=cfg.output_dir,
            app_name=cfg.app_name,
            output_name=cfg.output_name,
        )

        started = time.monotonic()
        try:
            result = self._package(request)
        except Exception as e:
            if not isinstance(e, PackagingError):
                # Warn-and-continue
                logger.exception(f"Unexpected error packaging {path}")
            return self._emit(
                WatchMessageKind.GENERATION_FAILED,
                f"Generation error for {path}: {e}",
                path=str(path),
                app_name=cfg.app_name,
                duration_ms=(time.monotonic() - started) * 1000,
            )

        signature = _signature(path)
        if signature is not None:
            self.state.processed[key] = signature

        return self._emit(
            WatchMessageKind.GENERATED,
            f"Generated: {result.archive_path}",
            path=str(path),
            archive_path=result.archive_path,
            app_name=cfg.app_name,
            duration_ms=result.duration_ms,
            size_bytes=result.size_bytes,
        )
