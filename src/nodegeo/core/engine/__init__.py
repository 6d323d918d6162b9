"""Concurrency engine."""

from nodegeo.core.engine.pool import (
    BoundedExecutor,
    ItemOutcome,
    WorkerStats,
    batch_process,
    batch_process_with_index,
    create_executor,
)

__all__ = [
    "BoundedExecutor",
    "ItemOutcome",
    "WorkerStats",
    "batch_process",
    "batch_process_with_index",
    "create_executor",
]
