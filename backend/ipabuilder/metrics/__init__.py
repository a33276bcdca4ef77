"""
Metrics — generation counters and app events.

Public API:
    MetricEventType — Recorded event types
    MetricEntry — One line of the metrics log
    MetricsCollector — JSONL-backed recorder with dashboard statistics
"""

from .models import MetricEventType, MetricEntry
from .collector import MetricsCollector

__all__ = [
    "MetricEventType",
    "MetricEntry",
    "MetricsCollector",
]
