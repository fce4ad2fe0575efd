from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy.orm import Session

from sync_service.options import SyncOptions
from sync_service.reconcile.matcher import EntityMatcher
from sync_service.registry.http_client import RateLimitedClient
from sync_service.registry.jurisdiction import NATIVE_PREFIX, normalize_code, registry_filter

logger = logging.getLogger(__name__)

LIST_PATH = "people/"


@dataclass
class DiscoveryCursor:
    """Traversal state for one discovery call. Never persisted."""

    known_ids: set[str]
    next_url: str | None = None
    seen_ids: set[str] = field(default_factory=set)
    pages_fetched: int = 0
    rows_scanned: int = 0


@dataclass(frozen=True)
class DiscoverResult:
    jurisdiction: str
    new_ids: list[str]
    known_count: int
    pages_fetched: int
    rows_scanned: int
    exhausted: bool


class EntityDiscovery:
    """
    Finds registry entities that are not yet in the local store.

    Two phases:
    1. Pull every locally known external id for the jurisdiction (paged in
       fixed windows) into one in-memory set.
    2. Stream the registry listing newest-modified-first and keep ids not in
       that set, stopping at the limit or the last page.

    The known set is held in memory in full. That bounds query size, not
    memory, and is the accepted scaling limit of this design.
    """

    def __init__(
        self,
        *,
        client: RateLimitedClient,
        session_factory: Callable[[], Session],
        home_jurisdiction: str = "CA",
        page_size: int = 100,
        known_id_page_size: int = 1000,
        default_limit: int = 500,
    ):
        self.client = client
        self.session_factory = session_factory
        self.home_jurisdiction = home_jurisdiction
        self.page_size = page_size
        self.known_id_page_size = known_id_page_size
        self.default_limit = default_limit

    def discover_new_ids(self, options: SyncOptions | None = None) -> list[str]:
        return self.discover(options).new_ids

    def discover(self, options: SyncOptions | None = None) -> DiscoverResult:
        options = options or SyncOptions()
        jurisdiction = normalize_code(options.jurisdiction or self.home_jurisdiction)
        limit = self.default_limit if options.discover_limit is None else options.discover_limit

        # Translate first so an unsupported jurisdiction fails before any I/O.
        query: dict[str, Any] = {
            "ordering": "-date_modified",
            "page_size": self.page_size,
            **registry_filter(jurisdiction),
        }

        if limit <= 0:
            return DiscoverResult(jurisdiction, [], 0, 0, 0, exhausted=False)

        cursor = DiscoveryCursor(known_ids=self._load_known_ids(jurisdiction))
        new_ids: list[str] = []

        for page in self.client.iter_pages(LIST_PATH, query):
            cursor.pages_fetched += 1
            cursor.next_url = page.get("next")

            for row in page.get("results") or []:
                row_id = _row_id(row)
                if row_id is None:
                    continue
                cursor.rows_scanned += 1
                if row_id in cursor.known_ids or row_id in cursor.seen_ids:
                    continue
                cursor.seen_ids.add(row_id)
                new_ids.append(row_id)
                if len(new_ids) >= limit:
                    break

            logger.info(
                "discovery page %d: %d new of %d scanned (jurisdiction=%s)",
                cursor.pages_fetched,
                len(new_ids),
                cursor.rows_scanned,
                jurisdiction,
            )
            if len(new_ids) >= limit:
                break

        return DiscoverResult(
            jurisdiction=jurisdiction,
            new_ids=new_ids,
            known_count=len(cursor.known_ids),
            pages_fetched=cursor.pages_fetched,
            rows_scanned=cursor.rows_scanned,
            exhausted=cursor.next_url is None,
        )

    def _load_known_ids(self, jurisdiction: str) -> set[str]:
        # Native filters have no local jurisdiction code; diff against everything we know.
        local_code = None if jurisdiction.lower().startswith(NATIVE_PREFIX) else jurisdiction
        with self.session_factory() as session:
            known = EntityMatcher(session).known_external_ids(local_code, page_size=self.known_id_page_size)
        logger.info("loaded %d known ids for jurisdiction=%s", len(known), jurisdiction)
        return known


def _row_id(row: Any) -> str | None:
    if not isinstance(row, dict):
        return None
    value = row.get("id")
    if value is None or value == "":
        return None
    return str(value)
