"""Tests for the worker resource pool and token cache."""

import threading
import time

import pytest

from rigger.config.schema import ProfileConfig
from rigger.core.errors import SetupFailure
from rigger.core.models import ResourceKind
from rigger.core.pool import TokenCache, WorkerResourcePool

QA = ProfileConfig(name="qa")
PROD = ProfileConfig(name="prod")


def test_acquire_is_lazy_and_reused(pool, factories):
    """A handle is created on first acquire and reused afterwards."""
    ui = factories[ResourceKind.UI_SESSION]
    assert ui.created == []

    first = pool.acquire("worker-1", ResourceKind.UI_SESSION, QA)
    second = pool.acquire("worker-1", ResourceKind.UI_SESSION, QA)

    assert first is second
    assert len(ui.created) == 1


def test_api_context_token_fetched_once(pool, factories):
    """Acquiring the API context twice fetches the token once."""
    api = factories[ResourceKind.API_CONTEXT]

    first = pool.acquire("worker-1", ResourceKind.API_CONTEXT, QA)
    second = pool.acquire("worker-1", ResourceKind.API_CONTEXT, QA)

    assert first is second
    assert first.token == "secret-token"
    assert api.fetches == ["qa"]


def test_token_shared_between_workers(pool, factories):
    """Workers using the same account share one token but not the handle."""
    api = factories[ResourceKind.API_CONTEXT]

    first = pool.acquire("worker-1", ResourceKind.API_CONTEXT, QA)
    second = pool.acquire("worker-2", ResourceKind.API_CONTEXT, QA)

    assert first is not second
    assert api.fetches == ["qa"]


def test_workers_are_isolated(pool):
    """Each worker gets its own handle."""
    first = pool.acquire("worker-1", ResourceKind.DB_CONNECTION, QA)
    second = pool.acquire("worker-2", ResourceKind.DB_CONNECTION, QA)

    assert first is not second
    assert sorted(pool.workers()) == ["worker-1", "worker-2"]


def test_invalid_handle_is_recreated(pool, factories):
    """A handle failing its validity check is closed and replaced."""
    ui = factories[ResourceKind.UI_SESSION]
    first = pool.acquire("worker-1", ResourceKind.UI_SESSION, QA)
    first.closed = True

    second = pool.acquire("worker-1", ResourceKind.UI_SESSION, QA)

    assert second is not first
    assert ui.closed == [first]
    assert len(ui.created) == 2


def test_profile_change_recreates(pool, factories):
    """A handle built for another profile is not reused."""
    db = factories[ResourceKind.DB_CONNECTION]
    first = pool.acquire("worker-1", ResourceKind.DB_CONNECTION, QA)

    second = pool.acquire("worker-1", ResourceKind.DB_CONNECTION, PROD)

    assert second.profile == "prod"
    assert db.closed == [first]


def test_invalidate_forces_new_token(pool, factories, token_cache):
    """Invalidating the API context drops the shared token."""
    api = factories[ResourceKind.API_CONTEXT]
    first = pool.acquire("worker-1", ResourceKind.API_CONTEXT, QA)

    pool.invalidate("worker-1", ResourceKind.API_CONTEXT)
    second = pool.acquire("worker-1", ResourceKind.API_CONTEXT, QA)

    assert second is not first
    assert api.fetches == ["qa", "qa"]


def test_create_failure_raises_setup_failure(factories):
    """Factory errors become SetupFailure and nothing is pooled."""
    factories[ResourceKind.DB_CONNECTION].fail_create = True
    pool = WorkerResourcePool(factories)

    with pytest.raises(SetupFailure) as exc_info:
        pool.acquire("worker-1", ResourceKind.DB_CONNECTION, QA)

    assert exc_info.value.kind == ResourceKind.DB_CONNECTION
    assert not pool.has("worker-1", ResourceKind.DB_CONNECTION)


def test_missing_factory_raises_setup_failure():
    """Acquiring a kind with no registered factory fails setup."""
    pool = WorkerResourcePool({})

    with pytest.raises(SetupFailure, match="No factory registered"):
        pool.acquire("worker-1", ResourceKind.UI_SESSION, QA)


def test_release_swallows_close_errors(factories):
    """Close errors are logged, not raised, and the entry is dropped."""
    factories[ResourceKind.UI_SESSION].fail_close = True
    pool = WorkerResourcePool(factories)
    pool.acquire("worker-1", ResourceKind.UI_SESSION, QA)

    pool.release("worker-1", ResourceKind.UI_SESSION)

    assert not pool.has("worker-1", ResourceKind.UI_SESSION)


def test_release_all(pool, factories):
    """release_all closes everything and forgets the worker."""
    pool.acquire("worker-1", ResourceKind.UI_SESSION, QA)
    pool.acquire("worker-1", ResourceKind.DB_CONNECTION, QA)
    pool.acquire("worker-2", ResourceKind.DB_CONNECTION, QA)

    pool.release_all("worker-1")

    assert pool.workers() == ["worker-2"]
    assert len(factories[ResourceKind.UI_SESSION].closed) == 1
    assert len(factories[ResourceKind.DB_CONNECTION].closed) == 1


def test_release_unknown_is_noop(pool):
    """Releasing something never acquired does nothing."""
    pool.release("worker-9", ResourceKind.UI_SESSION)
    pool.release_all("worker-9")


def test_token_cache_single_fetch_under_contention():
    """Concurrent callers for one key trigger exactly one fetch."""
    cache = TokenCache()
    calls = []

    def fetch():
        calls.append(1)
        time.sleep(0.05)
        return "tok"

    results = []
    threads = [
        threading.Thread(target=lambda: results.append(cache.get_or_fetch("acct", fetch)))
        for _ in range(8)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == ["tok"] * 8
    assert len(calls) == 1


def test_token_cache_rejects_empty_token():
    """An empty token is never cached."""
    cache = TokenCache()

    with pytest.raises(ValueError):
        cache.get_or_fetch("acct", lambda: "")
    assert "acct" not in cache


def test_token_cache_invalidate_and_clear():
    cache = TokenCache()
    cache.get_or_fetch("a", lambda: "1")
    cache.get_or_fetch("b", lambda: "2")

    cache.invalidate("a")
    assert "a" not in cache
    assert "b" in cache

    cache.clear()
    assert "b" not in cache
