"""
Metrics collector.

Append-only JSONL event log with dashboard statistics.

Design principles:
- One JSON object per line, appended on record()
- Unparseable lines are logged and skipped on load
- mark_sent() rewrites the whole file atomically (tmp file + replace)
"""

import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import ValidationError

from ..watchfolders.models import WatchMessage, WatchMessageKind
from .models import MetricEntry, MetricEventType

logger = logging.getLogger(__name__)


class MetricsCollector:
    """
    Records metric events to a JSONL file and keeps them in memory.

    Safe to share between request handlers; all access is serialized.
    """

    def __init__(self, file_path: Path):
        self.file_path = Path(file_path)
        self._lock = threading.Lock()
        self._entries: List[MetricEntry] = []

        parent = self.file_path.parent
        if not parent.exists():
            try:
                parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.error(f"Failed to create directory for metrics file {parent}: {e}")

        self._load()

    def _load(self) -> None:
        if not self.file_path.exists():
            return

        try:
            with open(self.file_path, "rb") as f:
                raw_lines = f.read().splitlines()
        except OSError as e:
            logger.error(f"Failed to read metrics file {self.file_path}: {e}")
            return

        for raw in raw_lines:
            raw = raw.strip()
            if not raw:
                continue
            try:
                self._entries.append(MetricEntry.model_validate_json(raw.decode("utf-8")))
            except (UnicodeDecodeError, ValidationError) as e:
                logger.warning(f"Failed to parse metric line {raw!r}: {e}")

    @property
    def entries(self) -> List[MetricEntry]:
        with self._lock:
            return list(self._entries)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record(self, event_type: MetricEventType, **fields) -> MetricEntry:
        """
        Record one event.

        Write failures are logged; the entry is still kept in memory.
        """
        entry = MetricEntry(event_type=event_type, **fields)
        with self._lock:
            self._entries.append(entry)
            try:
                with open(self.file_path, "a", encoding="utf-8") as f:
                    f.write(entry.model_dump_json() + "\n")
            except OSError as e:
                logger.error(f"Failed to write metric to {self.file_path}: {e}")
        return entry

    def record_generation(
        self,
        app_name: str,
        success: bool,
        duration_ms: float,
        output_size_bytes: int = 0,
    ) -> MetricEntry:
        return self.record(
            MetricEventType.IPA_GENERATED,
            app_name=app_name,
            success=success,
            duration_ms=duration_ms,
            output_size_bytes=output_size_bytes if success else 0,
        )

    def observe(self, message: WatchMessage) -> Optional[MetricEntry]:
        """Record generation outcomes reported by the watch loop."""
        if message.kind == WatchMessageKind.GENERATED:
            return self.record_generation(
                app_name=message.app_name or "",
                success=True,
                duration_ms=message.duration_ms or 0.0,
                output_size_bytes=message.size_bytes or 0,
            )
        if message.kind == WatchMessageKind.GENERATION_FAILED:
            return self.record_generation(
                app_name=message.app_name or "",
                success=False,
                duration_ms=message.duration_ms or 0.0,
            )
        return None

    # ------------------------------------------------------------------
    # Upload bookkeeping
    # ------------------------------------------------------------------

    def unsent(self) -> List[MetricEntry]:
        with self._lock:
            return [e for e in self._entries if not e.sent_to_server]

    def mark_sent(self, sent_ids: Iterable[str]) -> None:
        """Flag entries as uploaded and rewrite the log file."""
        ids = set(sent_ids)
        if not ids:
            return

        with self._lock:
            self._entries = [
                e.model_copy(update={"sent_to_server": True}) if e.id in ids else e
                for e in self._entries
            ]
            if not self.file_path.exists():
                return

            tmp_path = self.file_path.with_suffix(".jsonl.tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                for entry in self._entries:
                    f.write(entry.model_dump_json() + "\n")
            os.replace(tmp_path, self.file_path)

    # ------------------------------------------------------------------
    # Dashboard statistics
    # ------------------------------------------------------------------

    def generations_today(self) -> int:
        today = datetime.now(timezone.utc).date()
        with self._lock:
            return sum(
                1 for e in self._entries
                if e.is_successful_generation and e.timestamp.astimezone(timezone.utc).date() == today
            )

    def generations_all_time(self) -> int:
        with self._lock:
            return sum(1 for e in self._entries if e.is_successful_generation)

    def avg_generation_ms(self) -> Optional[float]:
        """Average duration of successful generations, or None if there are none."""
        with self._lock:
            durations = [
                e.duration_ms or 0.0 for e in self._entries if e.is_successful_generation
            ]
        if not durations:
            return None
        return sum(durations) / len(durations)

    def summary(self) -> dict:
        return {
            "generations_today": self.generations_today(),
            "generations_all_time": self.generations_all_time(),
            "avg_generation_ms": self.avg_generation_ms(),
        }
