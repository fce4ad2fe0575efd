"""Read-only lookups of local judicial entities keyed by registry id."""

from __future__ import annotations

from typing import Iterator

from sqlalchemy import select
from sqlalchemy.orm import Session

from benchwatch_core.db.models import JudicialEntity


class EntityMatcher:
    """
    Finds local records for registry entities.

    Identity is the external id alone; names are never used for matching.
    Holds no state beyond the session, so one matcher per session is safe to
    use from any thread that owns that session.
    """

    def __init__(self, session: Session):
        self.session = session

    def find_local(self, external_id: str) -> JudicialEntity | None:
        return self.session.execute(
            select(JudicialEntity).where(JudicialEntity.external_id == str(external_id))
        ).scalar_one_or_none()

    def iter_known_ids(self, jurisdiction: str | None, *, page_size: int = 1000) -> Iterator[list[str]]:
        """
        Yield windows of known external ids, ordered by id, until a short page.

        Keyset pagination keeps each query bounded regardless of table size.
        """
        after: str | None = None
        while True:
            stmt = select(JudicialEntity.external_id).order_by(JudicialEntity.external_id).limit(page_size)
            if jurisdiction:
                stmt = stmt.where(JudicialEntity.jurisdiction_code == jurisdiction)
            if after is not None:
                stmt = stmt.where(JudicialEntity.external_id > after)

            window = list(self.session.execute(stmt).scalars())
            if window:
                yield window
                after = window[-1]
            if len(window) < page_size:
                return

    def known_external_ids(self, jurisdiction: str | None, *, page_size: int = 1000) -> set[str]:
        known: set[str] = set()
        for window in self.iter_known_ids(jurisdiction, page_size=page_size):
            known.update(window)
        return known
