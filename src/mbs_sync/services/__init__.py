"""
Service Layer - SyncService, its building blocks, and ServicesContainer.
"""

from mbs_sync.services.change_planner import (
    ChangeKind,
    ChangePlanner,
    PlanResult,
    find_stale_identifiers,
)
from mbs_sync.services.container import ServicesContainer, create_services, verify_services
from mbs_sync.services.embedding_worker import QUEUE_CLOSED, EmbeddingWorkerPool
from mbs_sync.services.metrics_collector import MetricsCollector
from mbs_sync.services.reconciler import RESULTS_DONE, ReconcileOutcome, Reconciler
from mbs_sync.services.sync_models import (
    EmbeddingJob,
    EmbeddingResult,
    ExistingStateError,
    RunSummary,
    SyncError,
)
from mbs_sync.services.sync_service import SyncService

__all__ = [
    # Container and factory
    "ServicesContainer",
    "create_services",
    "verify_services",
    # Coordinator
    "SyncService",
    "RunSummary",
    "SyncError",
    "ExistingStateError",
    # Planning
    "ChangePlanner",
    "ChangeKind",
    "PlanResult",
    "find_stale_identifiers",
    # Workers
    "EmbeddingWorkerPool",
    "EmbeddingJob",
    "EmbeddingResult",
    "QUEUE_CLOSED",
    # Reconciliation
    "Reconciler",
    "ReconcileOutcome",
    "RESULTS_DONE",
    # Metrics
    "MetricsCollector",
]
