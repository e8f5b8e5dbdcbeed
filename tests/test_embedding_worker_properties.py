"""
Property-based tests for the embedding worker pool.

**Feature: mbs-vector-sync, Property 3: Worker Completeness**
**Feature: mbs-vector-sync, Property 5: Partial-Failure Isolation**
"""

import asyncio
from collections import Counter

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from mbs_sync.infrastructure.embedding import DimensionMismatchError, EmbeddingRequestError
from mbs_sync.infrastructure.fakes import LocalEmbeddingClient
from mbs_sync.services.embedding_worker import QUEUE_CLOSED, EmbeddingWorkerPool
from mbs_sync.services.sync_models import EmbeddingJob
from tests.sync_test_utils import DIMENSION, make_item, run_async, run_jobs


def _jobs(count: int) -> list[EmbeddingJob]:
    jobs = []
    for n in range(count):
        item = make_item(str(n + 1), f"Service {n + 1}")
        jobs.append(
            EmbeddingJob(
                identifier=item.item_num,
                text=item.embedding_text(),
                item=item,
                fingerprint=f"fp-{n}",
            )
        )
    return jobs


@given(
    job_count=st.integers(min_value=0, max_value=40),
    num_workers=st.integers(min_value=1, max_value=8),
)
@settings(max_examples=100, deadline=None)
def test_every_job_yields_exactly_one_result(job_count: int, num_workers: int):
    """
    **Feature: mbs-vector-sync, Property 3: Worker Completeness**

    *For any* number of jobs (including zero) and any pool size, the pool
    produces exactly one result per job and calls the provider exactly
    once per job.
    """
    client = LocalEmbeddingClient(dimension=DIMENSION)
    jobs = _jobs(job_count)

    results = run_async(run_jobs(client, jobs, num_workers=num_workers))

    assert len(results) == job_count
    assert Counter(r.identifier for r in results) == Counter(j.identifier for j in jobs)
    assert len(client.calls) == job_count
    assert all(r.ok and len(r.vector) == DIMENSION for r in results)


@given(
    job_count=st.integers(min_value=1, max_value=30),
    num_workers=st.integers(min_value=1, max_value=6),
    data=st.data(),
)
@settings(max_examples=100, deadline=None)
def test_one_failure_does_not_affect_other_jobs(job_count: int, num_workers: int, data):
    """
    **Feature: mbs-vector-sync, Property 5: Partial-Failure Isolation**

    *For any* batch where exactly one embedding call fails, that job gets
    an error result and every other job gets a vector.
    """
    jobs = _jobs(job_count)
    failing = data.draw(st.sampled_from(jobs)).text
    client = LocalEmbeddingClient(dimension=DIMENSION, fail_on=lambda text: text == failing)

    results = run_async(run_jobs(client, jobs, num_workers=num_workers))

    failed = [r for r in results if not r.ok]
    assert len(results) == job_count
    assert len(failed) == 1
    assert failed[0].item.embedding_text() == failing
    assert isinstance(failed[0].error, EmbeddingRequestError)
    assert failed[0].vector is None


@pytest.mark.parametrize("num_workers,job_count", [(1, 5), (3, 10), (4, 2), (8, 8)])
def test_concurrency_is_bounded_by_pool_size(num_workers: int, job_count: int):
    """No more than num_workers embedding calls are in flight at once."""
    client = LocalEmbeddingClient(dimension=DIMENSION, delay=0.01)

    run_async(run_jobs(client, _jobs(job_count), num_workers=num_workers))

    assert client.max_in_flight == min(num_workers, job_count)


def test_wrong_dimension_becomes_error_result():
    client = LocalEmbeddingClient(dimension=DIMENSION, output_dimension=DIMENSION - 2)

    results = run_async(run_jobs(client, _jobs(3), num_workers=2))

    assert len(results) == 3
    assert all(isinstance(r.error, DimensionMismatchError) for r in results)


@pytest.mark.parametrize("num_workers", [0, -1])
def test_pool_requires_at_least_one_worker(num_workers: int):
    with pytest.raises(ValueError):
        EmbeddingWorkerPool(LocalEmbeddingClient(dimension=DIMENSION), num_workers=num_workers)


def test_close_enqueues_one_sentinel_per_worker():
    async def run_test():
        pool = EmbeddingWorkerPool(LocalEmbeddingClient(dimension=DIMENSION), num_workers=3)
        queue = pool.new_job_queue(0)
        pool.close(queue)
        return [queue.get_nowait() for _ in range(queue.qsize())]

    sentinels = run_async(run_test())

    assert sentinels == [QUEUE_CLOSED] * 3


def test_workers_consume_jobs_enqueued_after_start():
    """Workers started before planning finishes pick up jobs as they arrive."""

    async def run_test():
        client = LocalEmbeddingClient(dimension=DIMENSION)
        pool = EmbeddingWorkerPool(client, num_workers=2)
        jobs = pool.new_job_queue(4)
        results: asyncio.Queue = asyncio.Queue()

        runner = asyncio.create_task(pool.run(jobs, results))
        for job in _jobs(4):
            await asyncio.sleep(0)
            jobs.put_nowait(job)
        pool.close(jobs)

        processed = await runner
        return processed, results.qsize()

    processed, result_count = run_async(run_test())

    assert processed == 4
    assert result_count == 4
