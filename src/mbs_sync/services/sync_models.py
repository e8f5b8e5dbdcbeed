"""
Sync Service data models.

Contains dataclasses for embedding jobs and results, the run summary,
and the run-level error types.
"""

from dataclasses import dataclass, field

from mbs_sync.core.records import MBSItem


@dataclass
class EmbeddingJob:
    """One item that needs a new embedding."""

    identifier: str
    text: str
    item: MBSItem
    fingerprint: str


@dataclass
class EmbeddingResult:
    """Outcome of one embedding job: a vector or an error, never both."""

    identifier: str
    item: MBSItem
    fingerprint: str
    vector: list[float] | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.vector is not None


@dataclass
class RunSummary:
    """Counts for one reconciliation pass."""

    items_processed: int = 0
    items_skipped: int = 0
    items_updated: int = 0
    items_failed: int = 0
    items_removed: int = 0
    duration_seconds: float = 0.0
    failed_identifiers: list[str] = field(default_factory=list)

    @property
    def items_unaccounted(self) -> int:
        """Items neither skipped, updated nor failed (their lookup failed)."""
        return (
            self.items_processed - self.items_skipped - self.items_updated - self.items_failed
        )

    def to_dict(self) -> dict:
        """Serialize the counts for HTTP responses and logs."""
        return {
            "items_processed": self.items_processed,
            "items_skipped": self.items_skipped,
            "items_updated": self.items_updated,
            "items_failed": self.items_failed,
            "items_removed": self.items_removed,
            "duration_seconds": round(self.duration_seconds, 3),
        }


class SyncError(Exception):
    """Raised when a reconciliation run cannot complete."""

    pass


class ExistingStateError(SyncError):
    """Raised when the existing index snapshot cannot be read."""

    pass
