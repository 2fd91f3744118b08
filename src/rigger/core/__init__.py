"""Scenario lifecycle core for Rigger."""

from rigger.core.context import ScenarioContext
from rigger.core.errors import (
    ConfigurationError,
    ExecutionFailure,
    RiggerError,
    RoutingConflict,
    SetupFailure,
    SkipScenario,
    TeardownFailure,
)
from rigger.core.models import (
    LifecycleState,
    ResourceKind,
    RoutingDecision,
    ScenarioCase,
    ScenarioDescriptor,
    ScenarioOutcome,
    ScenarioStatus,
)
from rigger.core.orchestrator import LifecycleOrchestrator
from rigger.core.pool import PoolEntry, TokenCache, WorkerResourcePool
from rigger.core.retry import RetryPolicy, RetryState
from rigger.core.router import TagRouter

__all__ = [
    # Models
    "LifecycleState",
    "ResourceKind",
    "RoutingDecision",
    "ScenarioCase",
    "ScenarioDescriptor",
    "ScenarioOutcome",
    "ScenarioStatus",
    # Errors
    "RiggerError",
    "ConfigurationError",
    "RoutingConflict",
    "SetupFailure",
    "ExecutionFailure",
    "TeardownFailure",
    "SkipScenario",
    # Execution
    "ScenarioContext",
    "TagRouter",
    "WorkerResourcePool",
    "PoolEntry",
    "TokenCache",
    "RetryPolicy",
    "RetryState",
    "LifecycleOrchestrator",
]
