from __future__ import annotations

import threading
import time
from datetime import timedelta

import pytest

from sync_service.batch import BatchConfig, BatchRunner, FreshnessCache
from sync_service.errors import EntityNotFound, RetryPolicy, TransientRemoteError
from sync_service.reconcile import ReconcileOutcome
from tests.helpers import NOW, FakeSleep

CREATED = ReconcileOutcome(created=True, enhanced=True)
UPDATED = ReconcileOutcome(updated=True)


@pytest.fixture
def runner(sleep):
    return BatchRunner(sleep=sleep, clock=lambda: NOW)


def _config(**kwargs) -> BatchConfig:
    kwargs.setdefault("inter_batch_delay_ms", 0)
    return BatchConfig(**kwargs)


def test_one_failure_does_not_abort_the_batch(runner):
    def work(item):
        if item == "B":
            raise EntityNotFound(item)
        return CREATED

    stats = runner.run(["A", "B", "C"], work, _config())

    assert stats.processed == 3
    assert stats.created == 2
    assert stats.enhanced == 2
    assert stats.errors == ["B: not found"]


def test_unexpected_exceptions_are_isolated(runner):
    def work(item):
        if item == 2:
            raise KeyError("boom")
        return UPDATED

    stats = runner.run([1, 2, 3], work, _config())

    assert stats.processed == 3
    assert stats.updated == 2
    assert stats.errors == ["2: 'boom'"]


def test_batches_are_split_and_delayed_between(sleep):
    runner = BatchRunner(sleep=sleep, clock=lambda: NOW)
    seen = []

    stats = runner.run(list(range(25)), lambda item: seen.append(item) or UPDATED, _config(batch_size=10, inter_batch_delay_ms=1500))

    assert stats.processed == 25
    assert seen == list(range(25))
    # Three batches, two gaps, nothing after the last.
    assert sleep.calls == [1.5, 1.5]


def test_transient_errors_are_retried_with_backoff(runner, sleep):
    attempts = {"n": 0}

    def work(item):
        attempts["n"] += 1
        if attempts["n"] < 3:
            raise TransientRemoteError(503, "unavailable")
        return UPDATED

    stats = runner.run(["A"], work, _config(retry_policy=RetryPolicy(max_retries=3, base_backoff_seconds=1.0)))

    assert stats.errors == []
    assert stats.updated == 1
    assert attempts["n"] == 3
    assert sleep.calls == [1.0, 2.0]


def test_retries_exhausted_become_item_error(runner, sleep):
    def work(item):
        raise TransientRemoteError(503, "unavailable")

    policy = RetryPolicy(max_retries=3, base_backoff_seconds=1.0, max_backoff_seconds=3.0)
    stats = runner.run(["A"], work, _config(retry_policy=policy))

    assert stats.processed == 1
    assert len(stats.errors) == 1
    assert stats.errors[0].startswith("A: registry API error HTTP 503")
    assert sleep.calls == [1.0, 2.0, 3.0]


def test_not_found_is_never_retried(runner, sleep):
    calls = []

    def work(item):
        calls.append(item)
        raise EntityNotFound(item)

    runner.run(["A"], work, _config())

    assert calls == ["A"]
    assert sleep.calls == []


def test_skip_window_skips_recently_synced_items():
    freshness = FreshnessCache({"A": NOW - timedelta(hours=1), "B": NOW - timedelta(hours=30)})
    runner = BatchRunner(freshness=freshness, sleep=FakeSleep(), clock=lambda: NOW)
    called = []

    stats = runner.run(["A", "B", "C"], lambda item: called.append(item) or UPDATED, _config(skip_window=timedelta(hours=24)))

    assert called == ["B", "C"]
    assert stats.processed == 3
    assert stats.skipped == 1
    assert stats.updated == 2


def test_successful_items_are_marked_fresh(runner):
    config = _config(skip_window=timedelta(hours=1))
    calls = []

    runner.run(["A"], lambda item: calls.append(item) or UPDATED, config)
    stats = runner.run(["A"], lambda item: calls.append(item) or UPDATED, config)

    assert calls == ["A"]
    assert stats.skipped == 1


def test_failed_items_are_not_marked_fresh(runner):
    config = _config(skip_window=timedelta(hours=1))

    def fail(item):
        raise EntityNotFound(item)

    runner.run(["A"], fail, config)

    assert runner.freshness.last_synced("A") is None


def test_no_skip_window_means_no_skipping():
    freshness = FreshnessCache({"A": NOW})
    runner = BatchRunner(freshness=freshness, sleep=FakeSleep(), clock=lambda: NOW)

    stats = runner.run(["A"], lambda item: UPDATED, _config())

    assert stats.skipped == 0
    assert stats.updated == 1


def test_concurrency_is_bounded_per_batch(runner):
    lock = threading.Lock()
    state = {"active": 0, "peak": 0}

    def work(item):
        with lock:
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
        time.sleep(0.02)
        with lock:
            state["active"] -= 1
        if item == 3:
            raise EntityNotFound(item)
        return UPDATED

    stats = runner.run(list(range(12)), work, _config(batch_size=6, concurrency=3))

    assert stats.processed == 12
    assert stats.updated == 11
    assert stats.errors == ["3: not found"]
    assert 1 < state["peak"] <= 3


def test_invalid_config_is_rejected():
    with pytest.raises(ValueError):
        BatchConfig(batch_size=0)
    with pytest.raises(ValueError):
        BatchConfig(concurrency=0)
