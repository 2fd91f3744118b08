"""Scenario-scoped state shared between the steps of one scenario."""

from __future__ import annotations

from typing import Any, Dict, Optional

from rigger.core.models import ResourceKind

_MISSING = object()


class ScenarioContext:
    """State for one scenario execution on one worker.

    Holds references to the worker's pooled resources (the pool owns them),
    per-scenario key/value data, and the worker's session data which lives
    across scenarios until the worker shuts down.
    """

    def __init__(
        self,
        worker_id: str,
        scenario_name: str,
        session_data: Optional[Dict[str, Any]] = None,
        profile: Optional[str] = None,
        data_source: Optional[str] = None,
    ):
        self.worker_id = worker_id
        self.scenario_name = scenario_name
        self.profile = profile
        self.data_source = data_source
        self._data: Dict[str, Any] = {}
        self._session = session_data if session_data is not None else {}
        self._resources: Dict[ResourceKind, Any] = {}

    # Per-scenario data

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def has(self, key: str) -> bool:
        return key in self._data

    # Session data (survives across scenarios on this worker)

    def set_session(self, key: str, value: Any) -> None:
        self._session[key] = value

    def get_session(self, key: str, default: Any = None) -> Any:
        return self._session.get(key, default)

    def has_session(self, key: str) -> bool:
        return key in self._session

    # Resources

    def attach(self, kind: ResourceKind, handle: Any) -> None:
        """Record a reference to a handle acquired from the pool."""
        self._resources[kind] = handle

    def detach(self, kind: ResourceKind) -> None:
        self._resources.pop(kind, None)

    def has_resource(self, kind: ResourceKind) -> bool:
        return kind in self._resources

    def resource(self, kind: ResourceKind) -> Any:
        """Return the handle for kind.

        Raises:
            LookupError: If the scenario did not acquire the resource or it
                has already been released
        """
        handle = self._resources.get(kind, _MISSING)
        if handle is _MISSING:
            raise LookupError(
                f"{kind.value} is not available in scenario '{self.scenario_name}'"
            )
        return handle

    @property
    def ui(self) -> Any:
        return self.resource(ResourceKind.UI_SESSION)

    @property
    def api(self) -> Any:
        return self.resource(ResourceKind.API_CONTEXT)

    @property
    def db(self) -> Any:
        return self.resource(ResourceKind.DB_CONNECTION)

    # Lifecycle

    def clear(self) -> None:
        """Drop per-scenario data and resource references."""
        self._data.clear()
        self._resources.clear()

    def clear_all(self) -> None:
        """Clear everything, session data included. Called at worker shutdown."""
        self.clear()
        self._session.clear()

    def __repr__(self) -> str:
        kinds = [k.value for k in self._resources]
        return (
            f"ScenarioContext(worker={self.worker_id!r}, "
            f"scenario={self.scenario_name!r}, resources={kinds})"
        )
