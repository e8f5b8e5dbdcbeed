"""
Bounded-concurrency embedding workers.

A fixed number of asyncio tasks drain a job queue, call the embedding
provider once per job, and put exactly one result per job on a result
queue. The job queue is closed by enqueuing one QUEUE_CLOSED sentinel per
worker.
"""

import asyncio
import logging
import time
from typing import Optional

from mbs_sync.infrastructure.embedding import DimensionMismatchError, EmbeddingClientInterface
from mbs_sync.services.metrics_collector import MetricsCollector
from mbs_sync.services.sync_models import EmbeddingJob, EmbeddingResult

logger = logging.getLogger(__name__)

# Marks the end of the job queue; one per worker
QUEUE_CLOSED = object()


class EmbeddingWorkerPool:
    """Runs embedding jobs on a fixed number of concurrent workers."""

    def __init__(
        self,
        embedding_client: EmbeddingClientInterface,
        num_workers: int = 4,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        """
        Initialize the pool.

        Args:
            embedding_client: Provider used for every job
            num_workers: Number of concurrent workers, at least 1
            metrics_collector: Optional collector for embedding latency

        Raises:
            ValueError: If num_workers is below 1
        """
        if num_workers < 1:
            raise ValueError(f"num_workers must be at least 1, got {num_workers}")

        self._embedding_client = embedding_client
        self._num_workers = num_workers
        self._metrics_collector = metrics_collector

    @property
    def num_workers(self) -> int:
        return self._num_workers

    def new_job_queue(self, capacity: int) -> asyncio.Queue:
        """Create a job queue that can hold every job plus the sentinels."""
        return asyncio.Queue(maxsize=capacity + self._num_workers)

    def close(self, jobs: asyncio.Queue) -> None:
        """Signal that no more jobs will arrive."""
        for _ in range(self._num_workers):
            jobs.put_nowait(QUEUE_CLOSED)

    async def run(self, jobs: asyncio.Queue, results: asyncio.Queue) -> int:
        """
        Start the workers and wait until every one of them has exited.

        Returns:
            Number of jobs processed
        """
        workers = [
            asyncio.create_task(self._worker(worker_id, jobs, results))
            for worker_id in range(self._num_workers)
        ]
        processed = await asyncio.gather(*workers)
        return sum(processed)

    async def _worker(self, worker_id: int, jobs: asyncio.Queue, results: asyncio.Queue) -> int:
        processed = 0
        while True:
            job = await jobs.get()
            if job is QUEUE_CLOSED:
                logger.debug(f"Worker {worker_id} finished after {processed} jobs")
                return processed

            result = await self._process(job)
            await results.put(result)
            processed += 1

    async def _process(self, job: EmbeddingJob) -> EmbeddingResult:
        """Embed one job. Any failure is captured in the result."""
        embed_start = time.time()
        try:
            vector = await self._embedding_client.embed(job.text)
            expected = self._embedding_client.get_dimension()
            if len(vector) != expected:
                raise DimensionMismatchError(
                    f"Embedding dimension mismatch: expected {expected}, got {len(vector)}"
                )
        except Exception as e:
            logger.warning(f"Embedding failed for item {job.identifier}: {e}")
            return EmbeddingResult(
                identifier=job.identifier,
                item=job.item,
                fingerprint=job.fingerprint,
                error=e,
            )

        latency_ms = (time.time() - embed_start) * 1000
        logger.debug(
            "Embedding completed",
            extra={"item_num": job.identifier, "latency_ms": latency_ms},
        )
        if self._metrics_collector:
            self._metrics_collector.record_embedding_latency(latency_ms)

        return EmbeddingResult(
            identifier=job.identifier,
            item=job.item,
            fingerprint=job.fingerprint,
            vector=vector,
        )

