"""
Change planning for a reconciliation run.

Decides, item by item, whether the stored embedding is still current, and
emits an embedding job for every item that is new or whose fingerprint has
changed. Identifiers left in the index snapshot but missing from the batch
are reported as stale.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum

from mbs_sync.core.fingerprint import compute_fingerprint
from mbs_sync.core.records import MBSItem
from mbs_sync.infrastructure.vector_store import IndexEntry, VectorStoreError, VectorStoreInterface
from mbs_sync.services.sync_models import EmbeddingJob

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    """Classification of one incoming item."""

    NEW = "new"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"


@dataclass
class PlanResult:
    """What the planner saw and decided for one batch."""

    seen: set[str] = field(default_factory=set)
    jobs_emitted: int = 0
    skipped: list[str] = field(default_factory=list)
    lookup_failed: list[str] = field(default_factory=list)


def classify(entry: IndexEntry | None, fingerprint: str) -> ChangeKind:
    """Compare a stored entry with a freshly computed fingerprint."""
    if entry is None:
        return ChangeKind.NEW
    if entry.fingerprint == fingerprint:
        return ChangeKind.UNCHANGED
    return ChangeKind.MODIFIED


class ChangePlanner:
    """Plans which items need a new embedding."""

    def __init__(self, vector_store: VectorStoreInterface):
        self._vector_store = vector_store

    async def plan(
        self,
        items: Iterable[MBSItem],
        emit: Callable[[EmbeddingJob], None],
    ) -> PlanResult:
        """
        Classify every item and emit a job for each new or modified one.

        Each item is checked with a point lookup. An item whose lookup fails
        is logged and left alone for this run; it still counts as seen so
        it can never be deleted as stale.

        Args:
            items: Validated items of the batch
            emit: Called once per job; must not block

        Returns:
            PlanResult with the seen identifiers and per-kind lists
        """
        result = PlanResult()

        for item in items:
            identifier = item.item_num
            result.seen.add(identifier)
            fingerprint = compute_fingerprint(item)

            try:
                entry = await self._vector_store.get_point(identifier)
            except VectorStoreError as e:
                logger.error(f"Lookup failed for item {identifier}, skipping this run: {e}")
                result.lookup_failed.append(identifier)
                continue

            kind = classify(entry, fingerprint)
            if kind is ChangeKind.UNCHANGED:
                logger.debug(f"Item {identifier} unchanged")
                result.skipped.append(identifier)
                continue

            logger.debug(f"Item {identifier} is {kind.value}, queueing embedding")
            emit(
                EmbeddingJob(
                    identifier=identifier,
                    text=item.embedding_text(),
                    item=item,
                    fingerprint=fingerprint,
                )
            )
            result.jobs_emitted += 1

        return result


def find_stale_identifiers(existing: Iterable[IndexEntry], seen: set[str]) -> list[str]:
    """
    Return identifiers present in the snapshot but not in the batch.

    Each stale identifier appears once, in snapshot order.
    """
    stale: list[str] = []
    reported: set[str] = set()
    for entry in existing:
        identifier = entry.identifier
        if identifier in seen or identifier in reported:
            continue
        reported.add(identifier)
        stale.append(identifier)
    return stale
