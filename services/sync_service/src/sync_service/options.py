"""Run options accepted by the orchestrator and the result it returns."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    # The trigger layer sends camelCase keys; Python callers use snake_case.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class SyncOptions(_CamelModel):
    """Per-run overrides. Unset fields fall back to service settings."""

    batch_size: int | None = Field(default=None, ge=1)
    concurrency: int | None = Field(default=None, ge=1)
    jurisdiction: str | None = None
    force_refresh: bool = False
    entity_ids: list[str] = Field(default_factory=list)
    discover_limit: int | None = Field(default=None, ge=0)
    retries: int | None = Field(default=None, ge=0)
    inter_batch_delay_ms: int | None = Field(default=None, ge=0)
    skip_window_hours: float | None = Field(default=None, ge=0)
    stale_limit: int | None = Field(default=None, ge=0)

    def snapshot(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class JudgeSyncResult(_CamelModel):
    success: bool = False
    processed: int = 0
    updated: int = 0
    created: int = 0
    enhanced: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)
    duration_ms: int = 0
    sync_id: str | None = None

    def summary(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
