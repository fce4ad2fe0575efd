from __future__ import annotations

__all__ = [
    "EntityMatcher",
    "EntityReconciler",
    "ReconcileOutcome",
    "current_position",
]

from sync_service.reconcile.fields import current_position
from sync_service.reconcile.matcher import EntityMatcher
from sync_service.reconcile.reconciler import EntityReconciler, ReconcileOutcome
