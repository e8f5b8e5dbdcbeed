"""
Reconciler: applies embedding results and stale deletions to the index.

A single consumer task reads the result queue until RESULTS_DONE and is
the only writer of the updated/failed counters.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from mbs_sync.infrastructure.vector_store import (
    HASH_FIELD,
    LAST_CHECK_FIELD,
    VectorStoreError,
    VectorStoreInterface,
)
from mbs_sync.services.metrics_collector import MetricsCollector
from mbs_sync.services.sync_models import EmbeddingResult

logger = logging.getLogger(__name__)

# Placed on the result queue after the worker pool has joined
RESULTS_DONE = object()


def utc_timestamp() -> str:
    """Current time as an RFC 3339 UTC timestamp."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class ReconcileOutcome:
    """Counters written by the reconciler during one run."""

    results_consumed: int = 0
    updated: int = 0
    failed: int = 0
    removed: int = 0
    failed_identifiers: list[str] = field(default_factory=list)


class Reconciler:
    """Writes successful embeddings and removes stale entries."""

    def __init__(
        self,
        vector_store: VectorStoreInterface,
        metrics_collector: Optional[MetricsCollector] = None,
        clock: Callable[[], str] = utc_timestamp,
        on_result: Optional[Callable[[EmbeddingResult, bool, int], None]] = None,
    ):
        """
        Initialize the reconciler.

        Args:
            vector_store: Index to write to
            metrics_collector: Optional collector for index call durations
            clock: Returns the last-check timestamp stored with each upsert
            on_result: Called after each result with whether it was written and
                the number of results consumed so far
        """
        self._vector_store = vector_store
        self._metrics_collector = metrics_collector
        self._clock = clock
        self._on_result = on_result
        self.outcome = ReconcileOutcome()

    def build_payload(self, result: EmbeddingResult) -> dict:
        """Payload stored with a vector: fingerprint, last check, and every item field."""
        return {
            HASH_FIELD: result.fingerprint,
            LAST_CHECK_FIELD: self._clock(),
            **result.item.to_payload(),
        }

    async def apply_result(self, result: EmbeddingResult) -> bool:
        """
        Apply one embedding result.

        Returns:
            True if the item was written, False if it failed
        """
        self.outcome.results_consumed += 1

        if not result.ok:
            logger.error(f"Embedding failed for item {result.identifier}: {result.error}")
            self._record_failure(result.identifier)
            return False

        call_start = time.time()
        try:
            await self._vector_store.upsert(
                result.identifier, result.vector, self.build_payload(result)
            )
        except VectorStoreError as e:
            logger.error(f"Upsert failed for item {result.identifier}: {e}")
            self._record_failure(result.identifier)
            return False

        if self._metrics_collector:
            self._metrics_collector.record_qdrant_duration((time.time() - call_start) * 1000)

        self.outcome.updated += 1
        logger.debug(f"Updated item {result.identifier}")
        return True

    def _record_failure(self, identifier: str) -> None:
        self.outcome.failed += 1
        self.outcome.failed_identifiers.append(identifier)

    async def consume(self, results: asyncio.Queue) -> ReconcileOutcome:
        """Apply results from the queue until RESULTS_DONE arrives."""
        while True:
            result = await results.get()
            if result is RESULTS_DONE:
                return self.outcome

            written = await self.apply_result(result)
            if self._on_result:
                self._on_result(result, written, self.outcome.results_consumed)

    async def delete_stale(self, identifiers: Iterable[str]) -> int:
        """
        Delete each stale identifier once.

        Failed deletes are logged and not counted as removed.

        Returns:
            Number of identifiers removed
        """
        for identifier in identifiers:
            try:
                await self._vector_store.delete(identifier)
            except VectorStoreError as e:
                logger.error(f"Delete failed for stale item {identifier}: {e}")
                continue
            self.outcome.removed += 1
            logger.info(f"Removed stale item {identifier}")

        return self.outcome.removed
