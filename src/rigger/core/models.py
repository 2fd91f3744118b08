"""Data models for scenario execution."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Optional


class ResourceKind(str, Enum):
    """Category of external dependency a scenario may need.

    Declaration order is the setup order.
    """
    UI_SESSION = "ui_session"
    API_CONTEXT = "api_context"
    DB_CONNECTION = "db_connection"


class ScenarioStatus(str, Enum):
    """Final scenario status."""
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class LifecycleState(str, Enum):
    """Orchestrator states."""
    IDLE = "idle"
    SETTING_UP = "setting_up"
    RUNNING = "running"
    TEARING_DOWN = "tearing_down"
    REPORTING = "reporting"
    RETRYING = "retrying"


@dataclass(frozen=True)
class ScenarioDescriptor:
    """Immutable scenario identity as produced by discovery."""
    name: str
    tags: frozenset[str] = frozenset()
    location: Optional[str] = None

    @classmethod
    def create(
        cls,
        name: str,
        tags: Iterable[str] = (),
        location: Optional[str] = None,
    ) -> "ScenarioDescriptor":
        return cls(name=name, tags=frozenset(tags), location=location)


@dataclass(frozen=True)
class RoutingDecision:
    """Resources and environment selected for a tag set."""
    kinds: frozenset[ResourceKind]
    profile: str
    data_source: Optional[str] = None

    @property
    def ordered_kinds(self) -> list[ResourceKind]:
        return [kind for kind in ResourceKind if kind in self.kinds]


@dataclass(frozen=True)
class ScenarioCase:
    """A scenario descriptor paired with its executable body."""
    descriptor: ScenarioDescriptor
    body: Callable[[Any], None]


@dataclass
class ScenarioOutcome:
    """Final record handed to the reporting sink."""
    scenario_name: str
    status: ScenarioStatus
    attempts: int
    artifacts: list[Path] = field(default_factory=list)
    error: Optional[str] = None
    failure: Optional[str] = None  # setup, execution, routing, interrupted
    worker_id: Optional[str] = None
    profile: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_ms(self) -> int:
        if self.started_at and self.completed_at:
            return int((self.completed_at - self.started_at).total_seconds() * 1000)
        return 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "scenario": self.scenario_name,
            "status": self.status.value,
            "attempts": self.attempts,
            "artifacts": [str(a) for a in self.artifacts],
            "error": self.error,
            "failure": self.failure,
            "worker": self.worker_id,
            "profile": self.profile,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
        }
