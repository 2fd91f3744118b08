"""Error taxonomy for scenario execution."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from rigger.core.models import ResourceKind


class RiggerError(Exception):
    """Base class for all Rigger errors."""


class ConfigurationError(RiggerError):
    """Invalid configuration, unknown profile or malformed suite file."""


class RoutingConflict(ConfigurationError):
    """A tag set carries contradictory markers (e.g. both qa and prod)."""

    def __init__(self, category: str, markers: Iterable[str]):
        self.category = category
        self.markers = sorted(markers)
        super().__init__(
            f"Conflicting {category} tags: {', '.join(self.markers)}"
        )


class SetupFailure(RiggerError):
    """A required resource could not be acquired."""

    def __init__(self, kind: "ResourceKind", cause: BaseException):
        self.kind = kind
        self.cause = cause
        super().__init__(f"Failed to acquire {kind.value}: {cause}")


class ExecutionFailure(RiggerError):
    """The scenario body raised while running."""

    def __init__(self, scenario_name: str, cause: BaseException):
        self.scenario_name = scenario_name
        self.cause = cause
        super().__init__(f"{type(cause).__name__}: {cause}")


class TeardownFailure(RiggerError):
    """Releasing a resource failed. Logged, never propagated."""

    def __init__(self, kind: "ResourceKind", worker_id: str, cause: BaseException):
        self.kind = kind
        self.worker_id = worker_id
        self.cause = cause
        super().__init__(f"Failed to release {kind.value} on {worker_id}: {cause}")


class SkipScenario(RiggerError):
    """Raised by a scenario body to mark the scenario as skipped."""

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason or "skipped by scenario"
        super().__init__(self.reason)
