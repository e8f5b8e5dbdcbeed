"""
Sync Service for MBS Vector Sync.

Coordinates one reconciliation run: snapshot the index, plan changes,
embed changed items on a bounded worker pool, write results as they
arrive, then delete identifiers that disappeared from the schedule.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable, List, Optional

from mbs_sync.core.records import InvalidBatchError, MBSItem, load_batch_file
from mbs_sync.infrastructure.embedding import EmbeddingClientInterface
from mbs_sync.infrastructure.vector_store import VectorStoreError, VectorStoreInterface
from mbs_sync.services.change_planner import ChangePlanner, find_stale_identifiers
from mbs_sync.services.embedding_worker import EmbeddingWorkerPool
from mbs_sync.services.metrics_collector import MetricsCollector
from mbs_sync.services.reconciler import RESULTS_DONE, Reconciler
from mbs_sync.services.sync_models import ExistingStateError, RunSummary

logger = logging.getLogger(__name__)


class SyncService:
    """
    Service for reconciling a batch of MBS items with the vector index.

    Stateless across runs: everything durable lives in the index.
    """

    def __init__(
        self,
        embedding_client: EmbeddingClientInterface,
        vector_store: VectorStoreInterface,
        num_workers: int = 4,
        progress_callback: Optional[Callable[[int, int, str], None]] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        """
        Initialize the sync service.

        Args:
            embedding_client: Client for generating embeddings
            vector_store: Index holding vectors and payloads
            num_workers: Number of concurrent embedding workers
            progress_callback: Optional callback(current, total, message)
            metrics_collector: Optional collector for sync metrics

        Raises:
            ValueError: If num_workers is below 1
        """
        self._embedding_client = embedding_client
        self._vector_store = vector_store
        self._progress_callback = progress_callback
        self._metrics_collector = metrics_collector
        self._pool = EmbeddingWorkerPool(
            embedding_client,
            num_workers=num_workers,
            metrics_collector=metrics_collector,
        )
        self._planner = ChangePlanner(vector_store)

    @property
    def num_workers(self) -> int:
        return self._pool.num_workers

    def _report_progress(self, current: int, total: int, message: str) -> None:
        """Report progress if callback is set."""
        if self._progress_callback:
            self._progress_callback(current, total, message)
        logger.debug(f"Progress: {current}/{total} - {message}")

    async def sync_file(self, path: Path | str) -> RunSummary:
        """
        Load a batch file and reconcile it.

        Raises:
            FileNotFoundError: If the file doesn't exist
            InvalidBatchError: If the batch is malformed or empty
            ExistingStateError: If the index snapshot cannot be read
        """
        items = load_batch_file(path)
        return await self.sync(items)

    async def sync(self, items: List[MBSItem]) -> RunSummary:
        """
        Reconcile a batch of items with the index.

        Args:
            items: Validated items; identifiers must be unique

        Returns:
            RunSummary with the counts of this run

        Raises:
            InvalidBatchError: If an identifier appears twice
            ExistingStateError: If the index snapshot cannot be read; no
                embedding call has been made when this is raised
        """
        start_time = time.time()
        total = len(items)

        identifiers = [item.item_num for item in items]
        if len(set(identifiers)) != len(identifiers):
            raise InvalidBatchError("Batch contains duplicate ItemNum values")

        logger.info(f"Starting sync of {total} items with {self.num_workers} workers")

        self._report_progress(0, total, "Reading existing index...")
        try:
            existing = await self._vector_store.scroll_all()
        except VectorStoreError as e:
            logger.error(f"Cannot read existing index state, aborting run: {e}")
            if self._metrics_collector:
                self._metrics_collector.record_sync_failed()
            raise ExistingStateError(f"Failed to read existing index state: {e}") from e

        logger.info(f"Existing index holds {len(existing)} items")

        reconciler = Reconciler(
            self._vector_store,
            metrics_collector=self._metrics_collector,
            on_result=lambda result, written, consumed: self._report_progress(
                consumed, total, f"Item {result.identifier} {'updated' if written else 'failed'}"
            ),
        )

        job_queue = self._pool.new_job_queue(total)
        result_queue: asyncio.Queue = asyncio.Queue(maxsize=total + 1)

        consumer = asyncio.create_task(reconciler.consume(result_queue))
        workers = asyncio.create_task(self._pool.run(job_queue, result_queue))

        try:
            self._report_progress(0, total, "Planning changes...")
            plan = await self._planner.plan(items, job_queue.put_nowait)
        finally:
            self._pool.close(job_queue)
            await workers
            result_queue.put_nowait(RESULTS_DONE)
            outcome = await consumer

        logger.info(
            f"Planned {plan.jobs_emitted} embeddings, {len(plan.skipped)} unchanged, "
            f"{len(plan.lookup_failed)} lookup failures"
        )

        stale = find_stale_identifiers(existing, plan.seen)
        if stale:
            self._report_progress(total, total, f"Removing {len(stale)} stale items...")
            await reconciler.delete_stale(stale)

        summary = RunSummary(
            items_processed=total,
            items_skipped=len(plan.skipped),
            items_updated=outcome.updated,
            items_failed=outcome.failed,
            items_removed=outcome.removed,
            duration_seconds=time.time() - start_time,
            failed_identifiers=list(outcome.failed_identifiers),
        )

        self._report_progress(total, total, "Sync complete")

        logger.info("Sync run completed", extra=summary.to_dict())
        if summary.items_unaccounted:
            logger.warning(
                f"{summary.items_unaccounted} items were skipped because their lookup failed"
            )

        if self._metrics_collector:
            self._metrics_collector.record_sync_complete(summary.to_dict())

        return summary
