"""
One-way status channel from the watch loop to its caller.

The sender never blocks. The receiver polls without blocking and may
close its end at any time; the next send then reports the closure so the
loop can shut down normally.
"""

import queue
import threading
from typing import List, Optional

from .models import WatchMessage


class StatusChannel:
    """Unbounded, thread-safe message channel with non-blocking receive."""

    def __init__(self):
        self._queue: "queue.SimpleQueue[WatchMessage]" = queue.SimpleQueue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(self, message: WatchMessage) -> bool:
        """
        Deliver a message (best-effort).

        Returns:
            False if the receiver has closed the channel
        """
        if self._closed.is_set():
            return False
        self._queue.put(message)
        return True

    def try_recv(self) -> Optional[WatchMessage]:
        """Return the next message, or None if none is waiting."""
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> List[WatchMessage]:
        """Return every waiting message without blocking."""
        messages = []
        while True:
            message = self.try_recv()
            if message is None:
                return messages
            messages.append(message)

    def close(self) -> None:
        """Close the receiving end. Pending messages stay readable."""
        self._closed.set()
