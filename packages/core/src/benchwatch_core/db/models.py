from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import JSON, Date, DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from benchwatch_core.db.base import Base
from benchwatch_core.db.enums import SyncKind, SyncStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JudicialEntity(Base):
    __tablename__ = "judicial_entity"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Sole join key to the remote registry; never rewritten after insert.
    external_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(512), nullable=False)
    court_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    external_court_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    jurisdiction_code: Mapped[str] = mapped_column(String(16), nullable=False)
    appointed_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    education_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    biography_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    raw_external_payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    sync_source: Mapped[str] = mapped_column(String(50), nullable=False, default="courtlistener")
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_judicial_entity_jurisdiction", "jurisdiction_code"),
        Index("ix_judicial_entity_updated_at", "updated_at"),
        Index("ix_judicial_entity_last_synced_at", "last_synced_at"),
    )


class SyncRun(Base):
    __tablename__ = "sync_run"

    run_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sync_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    kind: Mapped[SyncKind] = mapped_column(Enum(SyncKind, native_enum=False), nullable=False)
    status: Mapped[SyncStatus] = mapped_column(
        Enum(SyncStatus, native_enum=False), nullable=False, default=SyncStatus.started
    )
    options_snapshot: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    result_summary: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_sync_run_kind_status", "kind", "status"),
        Index("ix_sync_run_started_at", "started_at"),
    )


def import_models() -> None:
    # Used by Alembic autogenerate. Keep import side effects explicit.
    _ = (
        JudicialEntity,
        SyncRun,
    )
