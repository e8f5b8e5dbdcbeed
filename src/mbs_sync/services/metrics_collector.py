"""
Metrics Collector service for sync observability.

Provides in-memory metrics collection for embedding latency, Qdrant operations,
and reconciliation run totals. Supports percentile calculations (p50, p95).
"""

from dataclasses import dataclass, field
from datetime import datetime


def calculate_percentile(values: list[float], percentile: float) -> float:
    """
    Calculate the given percentile of a list of values.

    Args:
        values: List of numeric values
        percentile: Percentile to calculate (0-100)

    Returns:
        The percentile value, or 0.0 if the list is empty
    """
    if not values:
        return 0.0

    sorted_values = sorted(values)
    n = len(sorted_values)

    # Linear interpolation between closest ranks
    index = (percentile / 100.0) * (n - 1)
    lower_idx = int(index)
    upper_idx = min(lower_idx + 1, n - 1)
    fraction = index - lower_idx

    return sorted_values[lower_idx] + fraction * (
        sorted_values[upper_idx] - sorted_values[lower_idx]
    )


def _summarize(samples: list[float]) -> dict:
    return {
        "avg": sum(samples) / len(samples) if samples else 0.0,
        "p50": calculate_percentile(samples, 50),
        "p95": calculate_percentile(samples, 95),
        "count": len(samples),
    }


@dataclass
class SyncMetrics:
    """
    Container for sync run metrics.

    Stores recent latency measurements and cumulative totals across runs.
    """

    embedding_latency_ms: list[float] = field(default_factory=list)
    qdrant_call_duration_ms: list[float] = field(default_factory=list)
    runs_total: int = 0
    runs_failed: int = 0
    items_processed_total: int = 0
    items_skipped_total: int = 0
    items_updated_total: int = 0
    items_failed_total: int = 0
    items_removed_total: int = 0
    last_run_duration_seconds: float = 0.0
    last_run_timestamp: datetime | None = None


class MetricsCollector:
    """
    Lightweight in-memory metrics collector for sync runs.

    Tracks embedding latencies, Qdrant operation durations and per-run
    counts. Provides aggregated metrics with percentile calculations.
    """

    # Maximum number of latency samples to retain
    MAX_LATENCY_SAMPLES = 1000

    def __init__(self) -> None:
        self._metrics = SyncMetrics()

    def _append_sample(self, samples: list[float], value: float) -> list[float]:
        samples.append(value)
        if len(samples) > self.MAX_LATENCY_SAMPLES:
            return samples[-self.MAX_LATENCY_SAMPLES :]
        return samples

    def record_embedding_latency(self, latency_ms: float) -> None:
        """
        Record an embedding API call latency.

        Args:
            latency_ms: Latency in milliseconds
        """
        self._metrics.embedding_latency_ms = self._append_sample(
            self._metrics.embedding_latency_ms, latency_ms
        )

    def record_qdrant_duration(self, duration_ms: float) -> None:
        """
        Record a Qdrant write duration.

        Args:
            duration_ms: Operation duration in milliseconds
        """
        self._metrics.qdrant_call_duration_ms = self._append_sample(
            self._metrics.qdrant_call_duration_ms, duration_ms
        )

    def record_sync_complete(self, summary: dict) -> None:
        """
        Record completion of a reconciliation run.

        Args:
            summary: RunSummary.to_dict() of the finished run
        """
        self._metrics.runs_total += 1
        self._metrics.items_processed_total += summary.get("items_processed", 0)
        self._metrics.items_skipped_total += summary.get("items_skipped", 0)
        self._metrics.items_updated_total += summary.get("items_updated", 0)
        self._metrics.items_failed_total += summary.get("items_failed", 0)
        self._metrics.items_removed_total += summary.get("items_removed", 0)
        self._metrics.last_run_duration_seconds = summary.get("duration_seconds", 0.0)
        self._metrics.last_run_timestamp = datetime.now()

    def record_sync_failed(self) -> None:
        """Record a run that aborted with a fatal error."""
        self._metrics.runs_total += 1
        self._metrics.runs_failed += 1
        self._metrics.last_run_timestamp = datetime.now()

    def get_metrics(self) -> dict:
        """
        Get aggregated metrics as a dictionary.

        Returns:
            Dictionary containing:
            - embedding_latency_ms: {avg, p50, p95, count}
            - qdrant_call_duration_ms: {avg, p50, p95, count}
            - runs_total, runs_failed: int
            - items_*_total: cumulative item counts
            - last_run_duration_seconds: float
            - last_run_timestamp: ISO format string or None
        """
        m = self._metrics
        return {
            "embedding_latency_ms": _summarize(m.embedding_latency_ms),
            "qdrant_call_duration_ms": _summarize(m.qdrant_call_duration_ms),
            "runs_total": m.runs_total,
            "runs_failed": m.runs_failed,
            "items_processed_total": m.items_processed_total,
            "items_skipped_total": m.items_skipped_total,
            "items_updated_total": m.items_updated_total,
            "items_failed_total": m.items_failed_total,
            "items_removed_total": m.items_removed_total,
            "last_run_duration_seconds": m.last_run_duration_seconds,
            "last_run_timestamp": (
                m.last_run_timestamp.isoformat() if m.last_run_timestamp else None
            ),
        }

    def reset(self) -> None:
        """Reset all metrics to initial state. Useful for testing."""
        self._metrics = SyncMetrics()
