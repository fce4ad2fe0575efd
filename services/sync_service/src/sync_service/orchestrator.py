"""
Top-level sync entry points.

`sync_judges` picks a worklist (explicit ids, or stale records followed by
newly discovered ones), runs it through the batch runner and reconciler, and
records the run in the audit table. `discover_and_sync` runs only the
discovery path.
"""

from __future__ import annotations

import functools
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from benchwatch_core.db.enums import SyncKind
from benchwatch_core.db.models import JudicialEntity
from sync_service.audit import AuditLogger
from sync_service.batch import BatchConfig, BatchRunner, BatchSyncStats
from sync_service.discovery import EntityDiscovery
from sync_service.errors import OrchestratorFault, RetryPolicy, error_details
from sync_service.logging_setup import bound_sync_id
from sync_service.options import JudgeSyncResult, SyncOptions
from sync_service.reconcile import EntityReconciler
from sync_service.registry.http_client import RateLimitedClient
from sync_service.registry.jurisdiction import NATIVE_PREFIX, normalize_code, registry_filter
from sync_service.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    def __init__(
        self,
        *,
        client: RateLimitedClient,
        session_factory: Callable[[], Session],
        settings: Settings | None = None,
        runner: BatchRunner | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or default_settings
        self.session_factory = session_factory
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._monotonic = monotonic

        self.reconciler = EntityReconciler(
            client=client,
            session_factory=session_factory,
            home_jurisdiction=self.settings.home_jurisdiction,
            clock=self.clock,
        )
        self.discovery = EntityDiscovery(
            client=client,
            session_factory=session_factory,
            home_jurisdiction=self.settings.home_jurisdiction,
            page_size=self.settings.page_size,
            known_id_page_size=self.settings.known_id_page_size,
            default_limit=self.settings.discover_limit,
        )
        self.audit = AuditLogger(session_factory, clock=self.clock)
        self.runner = runner or BatchRunner(sleep=sleep, clock=self.clock)

    def sync_judges(self, options: SyncOptions | dict[str, Any] | None = None) -> JudgeSyncResult:
        """
        Sync explicit ids, or refresh stale records and then pull in new ones.

        Args:
            options: Run options (SyncOptions or a camelCase/snake_case dict)

        Returns:
            JudgeSyncResult; `success` is False when any item failed or the run faulted
        """
        options = _coerce_options(options)
        if options.entity_ids:
            return self._run(SyncKind.specific_ids, options, self._sync_specific_ids)
        return self._run(SyncKind.stale_refresh, options, self._sync_stale_then_new)

    def discover_and_sync(self, options: SyncOptions | dict[str, Any] | None = None) -> JudgeSyncResult:
        options = _coerce_options(options)
        return self._run(SyncKind.discovery, options, self._sync_discovered)

    def batch_config(self, options: SyncOptions) -> BatchConfig:
        s = self.settings
        skip_hours = _first_set(options.skip_window_hours, s.skip_window_hours)
        return BatchConfig(
            batch_size=_first_set(options.batch_size, s.batch_size),
            concurrency=_first_set(options.concurrency, s.concurrency),
            retry_policy=RetryPolicy(
                max_retries=_first_set(options.retries, s.retries),
                base_backoff_seconds=s.backoff_base_s,
                max_backoff_seconds=s.backoff_cap_s,
            ),
            inter_batch_delay_ms=_first_set(options.inter_batch_delay_ms, s.inter_batch_delay_ms),
            skip_window=None if options.force_refresh or skip_hours <= 0 else timedelta(hours=skip_hours),
        )

    def stale_external_ids(self, options: SyncOptions) -> list[str]:
        """External ids not updated within the staleness window, oldest first."""
        limit = _first_set(options.stale_limit, self.settings.stale_limit)
        if limit <= 0:
            return []

        stmt = (
            select(JudicialEntity.external_id)
            .order_by(JudicialEntity.updated_at.asc(), JudicialEntity.external_id.asc())
            .limit(limit)
        )
        if options.jurisdiction:
            code = normalize_code(options.jurisdiction)
            if not code.lower().startswith(NATIVE_PREFIX):
                stmt = stmt.where(JudicialEntity.jurisdiction_code == code)
        if not options.force_refresh:
            cutoff = self.clock() - timedelta(days=self.settings.staleness_days)
            stmt = stmt.where(JudicialEntity.updated_at < cutoff)

        try:
            with self.session_factory() as session:
                return list(session.execute(stmt).scalars())
        except SQLAlchemyError as e:
            raise OrchestratorFault(f"failed to load stale records: {str(e).splitlines()[0]}") from e

    def _run(
        self,
        kind: SyncKind,
        options: SyncOptions,
        body: Callable[[SyncOptions, BatchConfig], BatchSyncStats],
    ) -> JudgeSyncResult:
        started = self._monotonic()
        result = JudgeSyncResult()
        sync_id: str | None = None

        try:
            sync_id = self.audit.start(kind, options)
            result.sync_id = sync_id
            # Freshness is per run; stored last_synced_at carries it across runs.
            self.runner.freshness.clear()

            with bound_sync_id(sync_id):
                if options.jurisdiction:
                    registry_filter(options.jurisdiction)
                stats = body(options, self.batch_config(options))

            result.processed = stats.processed
            result.updated = stats.updated
            result.created = stats.created
            result.enhanced = stats.enhanced
            result.skipped = stats.skipped
            result.errors = list(stats.errors)
            result.success = not stats.errors
            result.duration_ms = self._elapsed_ms(started)
            self.audit.complete(sync_id, result)
        except Exception as exc:
            result.success = False
            result.errors.append(f"Sync failed: {exc}")
            result.duration_ms = self._elapsed_ms(started)
            logger.exception("sync run %s failed: %s", sync_id, error_details(exc))
            if sync_id is not None:
                self._record_failure(sync_id, exc, result.duration_ms)
            return result

        logger.info(
            "sync run %s finished: processed=%d created=%d updated=%d enhanced=%d skipped=%d errors=%d (%d ms)",
            sync_id,
            result.processed,
            result.created,
            result.updated,
            result.enhanced,
            result.skipped,
            len(result.errors),
            result.duration_ms,
        )
        return result

    def _record_failure(self, sync_id: str, exc: Exception, duration_ms: int) -> None:
        try:
            self.audit.fail(sync_id, exc, duration_ms)
        except Exception:
            logger.exception("could not mark sync run %s as failed", sync_id)

    def _sync_specific_ids(self, options: SyncOptions, config: BatchConfig) -> BatchSyncStats:
        worklist = _dedupe(options.entity_ids)
        logger.info("syncing %d requested entities", len(worklist))
        return self._process(worklist, options, config)

    def _sync_stale_then_new(self, options: SyncOptions, config: BatchConfig) -> BatchSyncStats:
        stale = self.stale_external_ids(options)
        logger.info("refreshing %d stale entities", len(stale))
        stats = self._process(stale, options, config)

        if options.discover_limit == 0:
            return stats

        seen = set(stale)
        new_ids = [i for i in self.discovery.discover_new_ids(options) if i not in seen]
        logger.info("syncing %d newly discovered entities", len(new_ids))
        stats.merge(self._process(new_ids, options, config))
        return stats

    def _sync_discovered(self, options: SyncOptions, config: BatchConfig) -> BatchSyncStats:
        new_ids = self.discovery.discover_new_ids(options)
        logger.info("syncing %d newly discovered entities", len(new_ids))
        return self._process(new_ids, options, config)

    def _process(self, worklist: list[str], options: SyncOptions, config: BatchConfig) -> BatchSyncStats:
        if not worklist:
            return BatchSyncStats()
        if config.skip_window is not None:
            with self.session_factory() as session:
                self.runner.freshness.load_from_store(session, worklist)
        per_item = functools.partial(self.reconciler.reconcile, options=options)
        return self.runner.run(worklist, per_item, config)

    def _elapsed_ms(self, started: float) -> int:
        return int((self._monotonic() - started) * 1000)


def _coerce_options(options: SyncOptions | dict[str, Any] | None) -> SyncOptions:
    if options is None:
        return SyncOptions()
    if isinstance(options, SyncOptions):
        return options
    return SyncOptions.model_validate(options)


def _first_set(value: Any, fallback: Any) -> Any:
    return fallback if value is None else value


def _dedupe(ids: Iterable[Any]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()
    for raw in ids:
        value = str(raw).strip()
        if value and value not in seen:
            seen.add(value)
            out.append(value)
    return out
