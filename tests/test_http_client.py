from __future__ import annotations

import httpx
import pytest

from sync_service.errors import RemoteApiError, TransientRemoteError
from sync_service.registry.http_client import NOT_FOUND, RateLimitedClient
from tests.helpers import BASE_URL, FakeSleep, person


def _client(handler, *, sleep=None, page_delay=0.8, **kwargs) -> RateLimitedClient:
    return RateLimitedClient(
        base_url=BASE_URL,
        api_token="secret",
        transport=httpx.MockTransport(handler),
        sleep=sleep or FakeSleep(),
        monotonic=lambda: 0.0,
        page_delay=page_delay,
        **kwargs,
    )


def test_get_sends_auth_and_accept_headers(registry, client):
    registry.add(person("7"))

    payload = client.get("/people/7/")

    assert payload["id"] == 7
    request = registry.requests[0]
    assert request.headers["Authorization"] == "Bearer test-token"
    assert request.headers["Accept"] == "application/json"
    assert request.url.path == "/api/rest/v4/people/7/"


def test_auth_scheme_is_configurable():
    seen = []

    def handler(request):
        seen.append(request.headers.get("Authorization"))
        return httpx.Response(200, json={})

    with _client(handler, auth_scheme="Token") as client:
        client.get("people/1/")

    assert seen == ["Token secret"]


def test_404_returns_not_found_sentinel(client):
    result = client.get("people/404/")

    assert result is NOT_FOUND
    assert not result


@pytest.mark.parametrize("status", [429, 500, 502, 503])
def test_retryable_statuses_raise_transient(status):
    with _client(lambda request: httpx.Response(status, text="busy")) as client:
        with pytest.raises(TransientRemoteError) as excinfo:
            client.get("people/1/")

    assert excinfo.value.status == status


def test_other_client_errors_raise_remote_api_error():
    with _client(lambda request: httpx.Response(403, text="forbidden")) as client:
        with pytest.raises(RemoteApiError) as excinfo:
            client.get("people/1/")

    assert not isinstance(excinfo.value, TransientRemoteError)
    assert excinfo.value.status == 403
    assert "forbidden" in str(excinfo.value)


def test_timeout_raises_transient_without_status():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with _client(handler) as client:
        with pytest.raises(TransientRemoteError) as excinfo:
            client.get("people/1/")

    assert excinfo.value.status is None


def test_invalid_json_raises_remote_api_error():
    with _client(lambda request: httpx.Response(200, text="<html>")) as client:
        with pytest.raises(RemoteApiError):
            client.get("people/1/")


def test_iter_pages_follows_next_and_paces_pages(registry, client, sleep):
    registry.listing = [str(i) for i in range(1, 251)]

    pages = list(client.iter_pages("people/", {"page_size": 100, "ordering": "-date_modified"}))

    assert [len(p["results"]) for p in pages] == [100, 100, 50]
    assert len(registry.list_requests) == 3
    # Query string is carried by the `next` link on later pages.
    assert "ordering=-date_modified" in str(registry.list_requests[2].url)
    # Two pacing sleeps, none before the first page.
    assert sleep.calls == [0.8, 0.8]


def test_iter_pages_stops_fetching_when_abandoned(registry, client):
    registry.listing = [str(i) for i in range(1, 301)]

    pages = client.iter_pages("people/", {"page_size": 100})
    next(pages)
    pages.close()

    assert len(registry.list_requests) == 1


def test_requests_made_counts_calls(registry, client):
    registry.add(person("1"))

    client.get("people/1/")
    client.get("people/2/")

    assert client.requests_made == 2
