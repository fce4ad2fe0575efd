"""
Batch execution of per-item sync work.

A worklist is split into fixed-size batches. Items in a batch run either in
order or on a bounded thread pool; batches themselves never overlap and are
separated by a fixed delay to keep the remote request rate bounded.
"""

from __future__ import annotations

import contextvars
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Sequence

from sync_service.batch.freshness import FreshnessCache
from sync_service.errors import RetryPolicy, classify_error
from sync_service.reconcile.reconciler import SKIPPED, ReconcileOutcome

logger = logging.getLogger(__name__)


@dataclass
class BatchConfig:
    batch_size: int = 10
    concurrency: int = 1
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    inter_batch_delay_ms: int = 2000
    skip_window: timedelta | None = None

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.concurrency < 1:
            raise ValueError("concurrency must be >= 1")


@dataclass
class ItemResult:
    label: str
    outcome: ReconcileOutcome | None = None
    error: str | None = None
    retries: int = 0


@dataclass
class BatchSyncStats:
    processed: int = 0
    updated: int = 0
    created: int = 0
    enhanced: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def record(self, result: ItemResult) -> None:
        self.processed += 1
        if result.error is not None:
            self.errors.append(result.error)
            return
        outcome = result.outcome or ReconcileOutcome()
        self.updated += int(outcome.updated)
        self.created += int(outcome.created)
        self.enhanced += int(outcome.enhanced)
        self.skipped += int(outcome.skipped)

    def merge(self, other: BatchSyncStats) -> None:
        self.processed += other.processed
        self.updated += other.updated
        self.created += other.created
        self.enhanced += other.enhanced
        self.skipped += other.skipped
        self.errors.extend(other.errors)


class BatchRunner:
    def __init__(
        self,
        *,
        freshness: FreshnessCache | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] | None = None,
    ):
        self.freshness = freshness if freshness is not None else FreshnessCache()
        self._sleep = sleep
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def run(
        self,
        worklist: Sequence[Any],
        per_item_fn: Callable[[Any], ReconcileOutcome | None],
        config: BatchConfig,
    ) -> BatchSyncStats:
        """
        Run `per_item_fn` over every item of `worklist`.

        Args:
            worklist: Items to process; each item's str() is its label
            per_item_fn: Work for one item; exceptions are isolated per item
            config: Batch size, concurrency, retry policy, delay and skip window

        Returns:
            Aggregated stats; `processed` counts every offered item
        """
        items = list(worklist)
        total = BatchSyncStats()
        batches = [items[i : i + config.batch_size] for i in range(0, len(items), config.batch_size)]

        for index, batch in enumerate(batches, start=1):
            stats = self.run_batch(batch, per_item_fn, config)
            total.merge(stats)
            logger.info(
                "batch %d/%d: processed=%d created=%d updated=%d skipped=%d errors=%d",
                index,
                len(batches),
                stats.processed,
                stats.created,
                stats.updated,
                stats.skipped,
                len(stats.errors),
            )

            if index < len(batches) and config.inter_batch_delay_ms > 0:
                self._sleep(config.inter_batch_delay_ms / 1000.0)

        return total

    def run_batch(
        self,
        batch: Sequence[Any],
        per_item_fn: Callable[[Any], ReconcileOutcome | None],
        config: BatchConfig,
    ) -> BatchSyncStats:
        stats = BatchSyncStats()

        if config.concurrency <= 1 or len(batch) <= 1:
            for item in batch:
                stats.record(self._run_item(item, per_item_fn, config))
            return stats

        workers = min(config.concurrency, len(batch))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            # Each worker runs in a copy of the caller's context so the bound sync id follows it.
            futures = [
                executor.submit(contextvars.copy_context().run, self._run_item, item, per_item_fn, config)
                for item in batch
            ]
            for future in as_completed(futures):
                stats.record(future.result())
        return stats

    def _run_item(
        self,
        item: Any,
        per_item_fn: Callable[[Any], ReconcileOutcome | None],
        config: BatchConfig,
    ) -> ItemResult:
        label = str(item)

        if config.skip_window and self.freshness.is_fresh(label, window=config.skip_window, now=self._clock()):
            logger.debug("skipping %s: synced within %s", label, config.skip_window)
            return ItemResult(label, outcome=SKIPPED)

        policy = config.retry_policy
        retry_count = 0
        while True:
            try:
                outcome = per_item_fn(item)
            except Exception as exc:
                error_type = classify_error(exc)
                if policy.can_retry(error_type, retry_count):
                    delay = policy.get_backoff_seconds(retry_count)
                    retry_count += 1
                    logger.info(
                        "retrying %s in %.1fs (attempt %d/%d): %s",
                        label,
                        delay,
                        retry_count,
                        policy.max_retries,
                        exc,
                    )
                    self._sleep(delay)
                    continue
                logger.warning("%s failed [%s]: %s", label, error_type.value, exc)
                return ItemResult(label, error=f"{label}: {exc}", retries=retry_count)

            self.freshness.mark_synced(label, self._clock())
            return ItemResult(label, outcome=outcome, retries=retry_count)
