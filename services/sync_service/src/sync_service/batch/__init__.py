from __future__ import annotations

__all__ = [
    "BatchConfig",
    "BatchRunner",
    "BatchSyncStats",
    "FreshnessCache",
]

from sync_service.batch.freshness import FreshnessCache
from sync_service.batch.runner import BatchConfig, BatchRunner, BatchSyncStats
