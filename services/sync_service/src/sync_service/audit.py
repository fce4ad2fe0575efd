"""Persistent audit trail of sync runs (one `sync_run` row per run)."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from benchwatch_core.db.enums import SyncKind, SyncStatus
from benchwatch_core.db.models import SyncRun
from sync_service.errors import SyncError
from sync_service.options import JudgeSyncResult, SyncOptions

logger = logging.getLogger(__name__)


def new_sync_id(now: datetime) -> str:
    return f"judge-sync-{now:%Y%m%dT%H%M%S}-{uuid.uuid4().hex[:8]}"


class AuditLogger:
    """
    Writes the start and terminal state of every run.

    A row is inserted as `started` and later updated in place to `completed` or
    `failed`. Rows are never deleted.
    """

    def __init__(self, session_factory: Callable[[], Session], clock: Callable[[], datetime] | None = None):
        self.session_factory = session_factory
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def start(self, kind: SyncKind, options: SyncOptions) -> str:
        now = self.clock()
        sync_id = new_sync_id(now)
        with self.session_factory() as session:
            session.add(
                SyncRun(
                    sync_id=sync_id,
                    kind=kind,
                    status=SyncStatus.started,
                    options_snapshot=options.snapshot(),
                    started_at=now,
                )
            )
            session.commit()
        logger.info("sync run %s started (kind=%s)", sync_id, kind.value)
        return sync_id

    def complete(self, sync_id: str, result: JudgeSyncResult) -> None:
        with self.session_factory() as session:
            run = _get_run(session, sync_id)
            run.status = SyncStatus.completed
            run.completed_at = self.clock()
            run.duration_ms = result.duration_ms
            run.result_summary = result.summary()
            session.commit()

    def fail(self, sync_id: str, error: BaseException | str, duration_ms: int | None = None) -> None:
        with self.session_factory() as session:
            run = _get_run(session, sync_id)
            run.status = SyncStatus.failed
            run.completed_at = self.clock()
            run.duration_ms = duration_ms
            run.error_message = str(error)
            session.commit()

    def recent(self, limit: int = 20) -> list[SyncRun]:
        with self.session_factory() as session:
            runs = session.execute(
                select(SyncRun).order_by(SyncRun.started_at.desc()).limit(limit)
            ).scalars().all()
            session.expunge_all()
        return list(runs)


def _get_run(session: Session, sync_id: str) -> SyncRun:
    run = session.execute(select(SyncRun).where(SyncRun.sync_id == sync_id)).scalar_one_or_none()
    if run is None:
        raise SyncError(f"unknown sync run: {sync_id}")
    return run
