"""Tests for scenario context."""

import pytest

from rigger.core.context import ScenarioContext
from rigger.core.models import ResourceKind


def test_scenario_data():
    ctx = ScenarioContext("worker-1", "login")

    ctx.set("user", "alice")

    assert ctx.get("user") == "alice"
    assert ctx.has("user")
    assert ctx.get("missing", "fallback") == "fallback"


def test_session_data_is_shared():
    """Session data is the dict passed in and survives clear()."""
    session = {}
    ctx = ScenarioContext("worker-1", "login", session_data=session)

    ctx.set_session("cart", 3)
    ctx.set("step", 1)
    ctx.clear()

    assert session == {"cart": 3}
    assert ctx.get_session("cart") == 3
    assert not ctx.has("step")

    ctx.clear_all()
    assert session == {}


def test_resources():
    """Attached handles are reachable by kind until detached."""
    ctx = ScenarioContext("worker-1", "checkout")
    handle = object()

    ctx.attach(ResourceKind.DB_CONNECTION, handle)

    assert ctx.db is handle
    assert ctx.has_resource(ResourceKind.DB_CONNECTION)

    ctx.detach(ResourceKind.DB_CONNECTION)
    with pytest.raises(LookupError, match="db_connection"):
        ctx.db


def test_missing_resource():
    """Asking for a resource the scenario did not acquire fails clearly."""
    ctx = ScenarioContext("worker-1", "api only")

    with pytest.raises(LookupError, match="api only"):
        ctx.ui


def test_repr_lists_resources():
    ctx = ScenarioContext("worker-2", "s")
    ctx.attach(ResourceKind.API_CONTEXT, object())

    assert "api_context" in repr(ctx)
    assert "worker-2" in repr(ctx)
