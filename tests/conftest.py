"""Pytest configuration and fixtures."""

import threading
from itertools import count

import pytest

from rigger.config.schema import ProfileConfig, RiggerConfig
from rigger.core.models import ResourceKind
from rigger.core.orchestrator import LifecycleOrchestrator
from rigger.core.pool import TokenCache, WorkerResourcePool
from rigger.core.reporting import CollectingReportSink
from rigger.core.retry import RetryPolicy
from rigger.core.router import TagRouter
from rigger.resources.base import ResourceFactory, TokenResourceFactory


class FakeHandle:
    """Handle returned by the spy factories."""

    def __init__(self, kind, serial, profile):
        self.kind = kind
        self.serial = serial
        self.profile = profile
        self.closed = False
        self.token = None
        self.screenshots = []

    def screenshot(self, path):
        self.screenshots.append(path)
        return path

    def __repr__(self):
        return f"FakeHandle({self.kind.value}#{self.serial})"


class SpyFactory(ResourceFactory):
    """Factory that records every create/close call."""

    def __init__(self, kind, fail_create=False, fail_close=False):
        self.kind = kind
        self.fail_create = fail_create
        self.fail_close = fail_close
        self.created = []
        self.closed = []
        self._serial = count(1)
        self._lock = threading.Lock()

    def create(self, profile):
        if self.fail_create:
            raise RuntimeError(f"cannot create {self.kind.value}")
        with self._lock:
            handle = FakeHandle(self.kind, next(self._serial), profile.name)
            self.created.append(handle)
        return handle

    def is_valid(self, handle):
        return not handle.closed

    def close(self, handle):
        with self._lock:
            self.closed.append(handle)
        handle.closed = True
        if self.fail_close:
            raise RuntimeError(f"cannot close {self.kind.value}")


class SpyTokenFactory(SpyFactory, TokenResourceFactory):
    """API factory spy that also counts token fetches."""

    def __init__(self, kind=ResourceKind.API_CONTEXT, token="secret-token", **kwargs):
        super().__init__(kind, **kwargs)
        self.token = token
        self.fetches = []

    def fetch_token(self, profile):
        with self._lock:
            self.fetches.append(profile.name)
        return self.token

    def create(self, profile, token=""):
        handle = super().create(profile)
        handle.token = token
        return handle


@pytest.fixture
def factories():
    """Spy factories for every resource kind."""
    return {
        ResourceKind.UI_SESSION: SpyFactory(ResourceKind.UI_SESSION),
        ResourceKind.API_CONTEXT: SpyTokenFactory(),
        ResourceKind.DB_CONNECTION: SpyFactory(ResourceKind.DB_CONNECTION),
    }


@pytest.fixture
def config():
    """Configuration with qa and prod profiles and no retry delay."""
    return RiggerConfig(
        environment="qa",
        profiles={
            "qa": ProfileConfig(name="qa", api_base_url="http://qa.example.test"),
            "prod": ProfileConfig(name="prod", api_base_url="http://prod.example.test"),
        },
        retry={"max_attempts": 2, "delay": 0},
    )


@pytest.fixture
def token_cache():
    return TokenCache()


@pytest.fixture
def pool(factories, token_cache):
    return WorkerResourcePool(factories, token_cache=token_cache)


@pytest.fixture
def sink():
    return CollectingReportSink()


@pytest.fixture
def make_orchestrator(pool, config, sink):
    """Build orchestrators sharing the pool; retries never sleep."""

    def _make(worker_id="worker-1", max_attempts=2, capture=None, on_transition=None):
        return LifecycleOrchestrator(
            worker_id=worker_id,
            pool=pool,
            router=TagRouter(default_profile=config.environment),
            retry_policy=RetryPolicy(max_attempts=max_attempts, delay=0, sleep=lambda s: None),
            resolve_profile=config.get_profile,
            sink=sink,
            capture=capture,
            on_transition=on_transition,
        )

    return _make


@pytest.fixture
def temp_project(tmp_path):
    """Temporary project directory with a .rigger.yaml file."""
    config_file = tmp_path / ".rigger.yaml"
    config_file.write_text(
        "environment: uat\n"
        "profiles:\n"
        "  uat:\n"
        "    api_base_url: http://uat.example.test\n"
        "    username: ${RIGGER_TEST_USER}\n"
        "retry:\n"
        "  max_attempts: 1\n"
    )
    return tmp_path
