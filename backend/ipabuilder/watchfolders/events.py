"""
Filesystem-change notification.

Wraps a watchdog Observer so the watch loop sees an opaque stream of
"this path changed" signals on a queue.
"""

import logging
import queue
from pathlib import Path
from typing import Callable, Optional, Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .errors import WatcherStartError

logger = logging.getLogger(__name__)


class EventSource(Protocol):
    """Anything that pushes changed paths onto a queue between start and stop."""

    def start(self) -> None: ...

    def stop(self) -> None: ...


EventSourceFactory = Callable[[Path, "queue.Queue[Path]"], EventSource]


class _ForwardingHandler(FileSystemEventHandler):
    """Forwards every non-directory event path to a queue."""

    def __init__(self, events: "queue.Queue[Path]"):
        super().__init__()
        self._events = events

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        if event.event_type not in ("created", "modified", "moved", "closed"):
            return
        self._events.put(Path(_decode(event.src_path)))
        dest_path = getattr(event, "dest_path", "")
        if dest_path:
            self._events.put(Path(_decode(dest_path)))


def _decode(path) -> str:
    if isinstance(path, bytes):
        return path.decode(errors="surrogateescape")
    return path


class WatchdogEventSource:
    """Non-recursive watchdog observer on a single directory."""

    def __init__(self, watch_dir: Path, events: "queue.Queue[Path]"):
        self.watch_dir = watch_dir
        self._events = events
        self._observer: Optional[Observer] = None

    def start(self) -> None:
        """
        Start observing.

        Raises:
            WatcherStartError: If the platform backend cannot watch the directory
        """
        observer = Observer()
        try:
            observer.schedule(_ForwardingHandler(self._events), str(self.watch_dir), recursive=False)
            observer.start()
        except OSError as e:
            raise WatcherStartError(f"Cannot watch {self.watch_dir}: {e}") from e
        self._observer = observer
        logger.debug(f"Observing {self.watch_dir}")

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=2.0)
        self._observer = None

    def is_alive(self) -> bool:
        return self._observer is not None and self._observer.is_alive()
