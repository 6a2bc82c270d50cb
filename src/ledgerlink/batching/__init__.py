"""Multi-operation submissions: splitting, container dispatch and reconciliation."""

from ledgerlink.batching.executor import BatchExecutor, build_container_message
from ledgerlink.batching.reconciler import Reconciler, merge_outcomes
from ledgerlink.batching.splitter import MAX_BATCH_SIZE, MIN_BATCH_SIZE, split_operations

__all__ = [
    "MAX_BATCH_SIZE",
    "MIN_BATCH_SIZE",
    "BatchExecutor",
    "Reconciler",
    "build_container_message",
    "merge_outcomes",
    "split_operations",
]
