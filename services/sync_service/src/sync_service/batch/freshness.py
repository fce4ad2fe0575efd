"""In-memory record of when items were last synced, for the skip window."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from benchwatch_core.db.models import JudicialEntity


class FreshnessCache:
    def __init__(self, synced_at: dict[str, datetime] | None = None):
        self._synced_at: dict[str, datetime] = {k: _as_utc(v) for k, v in (synced_at or {}).items()}
        self._lock = threading.Lock()

    @classmethod
    def from_store(cls, session: Session, external_ids: Iterable[str], *, chunk_size: int = 500) -> FreshnessCache:
        cache = cls()
        cache.load_from_store(session, external_ids, chunk_size=chunk_size)
        return cache

    def load_from_store(self, session: Session, external_ids: Iterable[str], *, chunk_size: int = 500) -> int:
        """Seed from `judicial_entity.last_synced_at` for the given ids. Returns the number of ids seeded."""
        ids = [str(i) for i in external_ids]
        seeded: dict[str, datetime] = {}
        for start in range(0, len(ids), chunk_size):
            chunk = ids[start : start + chunk_size]
            rows = session.execute(
                select(JudicialEntity.external_id, JudicialEntity.last_synced_at).where(
                    JudicialEntity.external_id.in_(chunk),
                    JudicialEntity.last_synced_at.is_not(None),
                )
            ).all()
            seeded.update({external_id: synced_at for external_id, synced_at in rows})
        with self._lock:
            for key, synced_at in seeded.items():
                current = self._synced_at.get(key)
                synced_at = _as_utc(synced_at)
                if current is None or synced_at > current:
                    self._synced_at[key] = synced_at
        return len(seeded)

    def last_synced(self, key: str) -> datetime | None:
        with self._lock:
            return self._synced_at.get(key)

    def mark_synced(self, key: str, at: datetime) -> None:
        with self._lock:
            self._synced_at[key] = _as_utc(at)

    def is_fresh(self, key: str, *, window: timedelta, now: datetime) -> bool:
        last = self.last_synced(key)
        if last is None:
            return False
        return _as_utc(now) - last < window

    def clear(self) -> None:
        with self._lock:
            self._synced_at.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._synced_at)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything stored here is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
