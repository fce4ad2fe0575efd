from __future__ import annotations

import enum


class SyncKind(str, enum.Enum):
    discovery = "discovery"
    specific_ids = "specific_ids"
    stale_refresh = "stale_refresh"


class SyncStatus(str, enum.Enum):
    started = "started"
    completed = "completed"
    failed = "failed"
