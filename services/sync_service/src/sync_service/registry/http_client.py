"""HTTP client for the judicial registry API with auth, pagination and page pacing."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Iterator

import httpx

from sync_service.errors import RemoteApiError, TransientRemoteError
from sync_service.settings import Settings

logger = logging.getLogger(__name__)


class NotFound:
    """Typed 404 outcome. Falsy so callers can write `if not payload`."""

    _instance: NotFound | None = None

    def __new__(cls) -> NotFound:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = NotFound()


class RateLimitedClient:
    """
    Registry client with bearer-token auth and paced pagination.

    Features:
    - Authorization, Accept and User-Agent headers on every call
    - 404 returned as NOT_FOUND instead of raised
    - Timeouts, transport errors, 429 and 5xx raised as TransientRemoteError
    - Minimum delay between consecutive page fetches of one traversal

    No retries here; the batch runner owns retry policy.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_token: str,
        auth_scheme: str = "Bearer",
        user_agent: str = "benchwatch-sync/0.1",
        timeout: float = 30.0,
        page_delay: float = 0.8,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize registry client.

        Args:
            base_url: Registry API root, e.g. https://www.courtlistener.com/api/rest/v4
            api_token: Token for the Authorization header
            auth_scheme: Authorization scheme prefix
            user_agent: User-Agent string identifying the sync service
            timeout: Per-request timeout in seconds
            page_delay: Minimum seconds between consecutive page fetches
            transport: Optional httpx transport (tests use httpx.MockTransport)
            sleep: Sleep function used for page pacing
            monotonic: Clock used for page pacing
        """
        self.base_url = base_url.rstrip("/")
        self.page_delay = page_delay
        self._sleep = sleep
        self._monotonic = monotonic
        self._lock = threading.Lock()
        self.requests_made = 0

        headers = {
            "Accept": "application/json",
            "User-Agent": user_agent,
        }
        if api_token:
            headers["Authorization"] = f"{auth_scheme} {api_token}"

        self.client = httpx.Client(
            base_url=self.base_url + "/",
            timeout=httpx.Timeout(timeout),
            headers=headers,
            follow_redirects=True,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> RateLimitedClient:
        kwargs: dict[str, Any] = {
            "base_url": settings.registry_base_url,
            "api_token": settings.registry_api_token,
            "auth_scheme": settings.registry_auth_scheme,
            "user_agent": settings.user_agent,
            "timeout": settings.request_timeout_s,
            "page_delay": settings.page_delay_s,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    def get(self, path: str, query: dict[str, Any] | None = None) -> Any:
        """
        GET a registry resource.

        Args:
            path: Path relative to the base URL, or an absolute URL
            query: Optional query parameters (None values are dropped)

        Returns:
            Decoded JSON body, or NOT_FOUND on HTTP 404
        """
        return self._request(path.lstrip("/") if not _is_absolute(path) else path, query)

    def iter_pages(self, path: str, query: dict[str, Any] | None = None) -> Iterator[dict[str, Any]]:
        """
        Yield list pages, following `next` links until exhausted.

        The caller may stop iterating at any time; no further page is fetched
        after the generator is abandoned.
        """
        target: str | None = path
        params = query
        last_fetch: float | None = None

        while target:
            if last_fetch is not None:
                self._pace(last_fetch)
            page = self.get(target, params)
            last_fetch = self._monotonic()
            if page is NOT_FOUND:
                return
            if not isinstance(page, dict):
                raise RemoteApiError(200, "list response is not a JSON object", url=target)

            yield page

            target = page.get("next")
            # `next` already carries the full query string.
            params = None

    def _pace(self, last_fetch: float) -> None:
        elapsed = self._monotonic() - last_fetch
        if elapsed < self.page_delay:
            self._sleep(self.page_delay - elapsed)

    def _request(self, url: str, query: dict[str, Any] | None) -> Any:
        params = {k: v for k, v in (query or {}).items() if v is not None} or None
        with self._lock:
            self.requests_made += 1

        try:
            response = self.client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise TransientRemoteError(None, url=url, cause=e) from e
        except httpx.TransportError as e:
            raise TransientRemoteError(None, url=url, cause=e) from e

        status = response.status_code
        if status == 404:
            logger.debug("registry 404 for %s", response.request.url)
            return NOT_FOUND
        if status == 429 or status >= 500:
            raise TransientRemoteError(status, response.text, url=str(response.request.url))
        if not response.is_success:
            raise RemoteApiError(status, response.text, url=str(response.request.url))

        try:
            return response.json()
        except ValueError as e:
            raise RemoteApiError(status, "response body is not valid JSON", url=str(response.request.url)) from e

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> RateLimitedClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def _is_absolute(url: str) -> bool:
    return url.startswith("http://") or url.startswith("https://")
