"""In-memory registry double served through httpx.MockTransport."""

from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from contextlib import contextmanager
from typing import Any, Callable, Iterator
from urllib.parse import parse_qs, urlencode

import httpx
from sqlalchemy.orm import Session

BASE_URL = "https://registry.test/api/rest/v4"
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def person(
    pid: str,
    *,
    name: str | None = None,
    court_id: str = "cal",
    court_name: str = "Supreme Court of California",
    jurisdiction: str = "S",
    date_start: str | None = "2011-01-03",
    educations: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    return {
        "id": int(pid) if pid.isdigit() else pid,
        "name_full": name or f"Judge {pid}",
        "positions": [
            {
                "position_type": "jud",
                "date_start": date_start,
                "date_termination": None,
                "court": {"id": court_id, "full_name": court_name, "jurisdiction": jurisdiction},
            }
        ],
        "educations": educations
        if educations is not None
        else [{"school": {"name": "Stanford University"}, "degree_detail": "JD"}],
    }


class FakeRegistry:
    """
    Serves `people/{id}/` from `people` and `people/` as a paged listing of `listing`.

    `failures` maps an id to a list of status codes returned before the real
    response (e.g. [503, 503] fails twice, then succeeds).
    """

    def __init__(self, people: dict[str, dict[str, Any]] | None = None, listing: list[str] | None = None):
        self.people: dict[str, dict[str, Any]] = dict(people or {})
        self.listing: list[str] = list(listing or [])
        self.failures: dict[str, list[int]] = {}
        self.requests: list[httpx.Request] = []
        self.page_size = 100
        self.latency = 0.0
        self.peak_in_flight = 0
        self._in_flight = 0
        self._lock = threading.Lock()

    def add(self, *payloads: dict[str, Any]) -> None:
        for payload in payloads:
            self.people[str(payload["id"])] = payload

    @property
    def list_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.rstrip("/").endswith("/people")]

    @property
    def detail_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if not r.url.path.rstrip("/").endswith("/people")]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        with self._lock:
            self._in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self._in_flight)
        try:
            if self.latency:
                time.sleep(self.latency)
            return self._respond(request)
        finally:
            with self._lock:
                self._in_flight -= 1

    def _respond(self, request: httpx.Request) -> httpx.Response:
        parts = [p for p in request.url.path.split("/") if p]
        if parts[-1] == "people":
            return self._list(request)

        external_id = parts[-1]
        pending = self.failures.get(external_id)
        if pending:
            return httpx.Response(pending.pop(0), text="upstream unavailable")
        payload = self.people.get(external_id)
        if payload is None:
            return httpx.Response(404, json={"detail": "Not found."})
        return httpx.Response(200, json=payload)

    def _list(self, request: httpx.Request) -> httpx.Response:
        params = {k: v[0] for k, v in parse_qs(request.url.query.decode()).items()}
        page = int(params.get("page", "1"))
        size = int(params.get("page_size", str(self.page_size)))
        start = (page - 1) * size
        rows = [{"id": int(i) if i.isdigit() else i} for i in self.listing[start : start + size]]

        next_url = None
        if start + size < len(self.listing):
            next_params = dict(params, page=str(page + 1))
            next_url = f"{BASE_URL}/people/?{urlencode(next_params)}"
        return httpx.Response(200, json={"count": len(self.listing), "next": next_url, "results": rows})


class FakeSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class SerializedSessions:
    """
    Session factory that lets one session at a time touch the shared in-memory
    SQLite connection. Registry fetches outside the session still overlap.
    """

    def __init__(self, factory: Callable[[], Session]) -> None:
        self.factory = factory
        self._lock = threading.Lock()

    @contextmanager
    def __call__(self) -> Iterator[Session]:
        with self._lock:
            with self.factory() as session:
                yield session
