"""Create-or-update-or-enrich reconciliation of one registry entity."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from benchwatch_core.db.models import JudicialEntity
from sync_service.errors import EntityNotFound, PersistenceError, RemoteApiError
from sync_service.options import SyncOptions
from sync_service.reconcile.fields import (
    DerivedFields,
    biography_summary,
    derive_fields,
    education_summary,
)
from sync_service.reconcile.matcher import EntityMatcher
from sync_service.registry.http_client import NOT_FOUND, RateLimitedClient
from sync_service.registry.jurisdiction import FEDERAL, STATES_BY_CODE, normalize_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileOutcome:
    created: bool = False
    updated: bool = False
    enhanced: bool = False
    skipped: bool = False


SKIPPED = ReconcileOutcome(skipped=True)


class EntityReconciler:
    """
    Reconciles one registry entity into the local store.

    Each call fetches the entity, opens its own session, writes the full set of
    derived fields and commits, so progress is durable per item and the
    reconciler can be shared across worker threads.
    """

    def __init__(
        self,
        *,
        client: RateLimitedClient,
        session_factory: Callable[[], Session],
        home_jurisdiction: str = "CA",
        clock: Callable[[], datetime] | None = None,
    ):
        self.client = client
        self.session_factory = session_factory
        self.home_jurisdiction = home_jurisdiction.strip().upper()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def fetch(self, external_id: str) -> dict[str, Any]:
        payload = self.client.get(f"people/{external_id}/")
        if payload is NOT_FOUND:
            raise EntityNotFound(external_id)
        if not isinstance(payload, dict):
            raise RemoteApiError(200, "entity response is not a JSON object")
        return payload

    def reconcile(self, external_id: str, options: SyncOptions | None = None) -> ReconcileOutcome:
        """
        Fetch one entity and create, update and enrich its local record.

        Args:
            external_id: Registry identifier
            options: Run options; a state or federal `jurisdiction` becomes the
                fallback when no jurisdiction can be derived from the court

        Returns:
            ReconcileOutcome with created/updated/enhanced flags

        Raises:
            EntityNotFound: registry returned 404
            RemoteApiError: other registry failures (TransientRemoteError for retryable ones)
            PersistenceError: local write failed
        """
        external_id = str(external_id).strip()
        payload = self.fetch(external_id)
        fields = derive_fields(payload, home_jurisdiction=self._fallback_jurisdiction(options))
        now = self.clock()

        try:
            with self.session_factory() as session:
                entity = EntityMatcher(session).find_local(external_id)
                created = entity is None
                if created:
                    entity = JudicialEntity(external_id=external_id, created_at=now)
                    session.add(entity)

                _apply_fields(entity, fields, payload, now)
                enhanced = _enrich(entity, payload)
                session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(external_id, str(e).splitlines()[0]) from e

        logger.debug(
            "reconciled %s created=%s enhanced=%s jurisdiction=%s",
            external_id,
            created,
            enhanced,
            fields.jurisdiction_code,
        )
        return ReconcileOutcome(created=created, updated=not created, enhanced=enhanced)

    def _fallback_jurisdiction(self, options: SyncOptions | None) -> str:
        # Only a state or federal code can stand in for a derived one; native filters never do.
        if options is not None and options.jurisdiction:
            code = normalize_code(options.jurisdiction)
            if code == FEDERAL or code in STATES_BY_CODE:
                return code
        return self.home_jurisdiction


def _apply_fields(entity: JudicialEntity, fields: DerivedFields, payload: dict[str, Any], now: datetime) -> None:
    # Full replace of everything derived from the registry. external_id is never touched.
    entity.display_name = fields.display_name
    entity.court_name = fields.court_name
    entity.external_court_id = fields.external_court_id
    entity.jurisdiction_code = fields.jurisdiction_code
    entity.appointed_date = fields.appointed_date
    entity.raw_external_payload = payload
    entity.last_synced_at = now
    entity.updated_at = now


def _enrich(entity: JudicialEntity, payload: dict[str, Any]) -> bool:
    education = education_summary(payload.get("educations"))
    biography = biography_summary(payload.get("positions"))
    if education:
        entity.education_summary = education
    if biography:
        entity.biography_summary = biography
    return bool(education or biography)
