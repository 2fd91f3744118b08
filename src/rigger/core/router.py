"""Tag routing - decides which resources and profile a scenario needs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterable, Optional

from rigger.core.errors import RoutingConflict
from rigger.core.models import ResourceKind, RoutingDecision

if TYPE_CHECKING:
    from rigger.config.schema import RoutingConfig

logger = logging.getLogger(__name__)


DEFAULT_MARKERS: Dict[ResourceKind, frozenset[str]] = {
    ResourceKind.UI_SESSION: frozenset({"ui", "web", "selenium", "browser"}),
    ResourceKind.API_CONTEXT: frozenset({"api", "rest", "service"}),
    ResourceKind.DB_CONNECTION: frozenset({"db", "database", "sql"}),
}
DEFAULT_MIXED_MARKERS = frozenset({"mixed"})
DEFAULT_ENVIRONMENT_MARKERS = frozenset({"qa", "uat", "stage", "prod"})
DEFAULT_DATA_SOURCE_MARKERS = frozenset({"excel", "json", "csv"})


def normalize_tag(tag: str) -> str:
    """Normalize a tag: strip whitespace and a leading '@', lowercase."""
    return tag.strip().lstrip("@").lower()


class TagRouter:
    """Maps a scenario tag set to resource kinds and an environment profile.

    Matching is exact on normalized tags against an explicit marker table
    per resource kind. Several kinds may be active at once. Exactly one
    environment profile is selected; contradictory environment (or data
    source) markers raise RoutingConflict.

    The router is pure: it never acquires anything.
    """

    def __init__(
        self,
        default_profile: str = "qa",
        markers: Optional[Dict[ResourceKind, Iterable[str]]] = None,
        mixed_markers: Iterable[str] = DEFAULT_MIXED_MARKERS,
        environment_markers: Iterable[str] = DEFAULT_ENVIRONMENT_MARKERS,
        data_source_markers: Iterable[str] = DEFAULT_DATA_SOURCE_MARKERS,
    ):
        self.default_profile = default_profile
        source = markers if markers is not None else DEFAULT_MARKERS
        self.markers = {
            kind: frozenset(normalize_tag(m) for m in source.get(kind, ()))
            for kind in ResourceKind
        }
        self.mixed_markers = frozenset(normalize_tag(m) for m in mixed_markers)
        self.environment_markers = frozenset(normalize_tag(m) for m in environment_markers)
        self.data_source_markers = frozenset(normalize_tag(m) for m in data_source_markers)

    @classmethod
    def from_config(cls, routing: RoutingConfig, default_profile: str) -> "TagRouter":
        """Build a router from the routing section of the configuration."""
        return cls(
            default_profile=default_profile,
            markers={
                ResourceKind.UI_SESSION: routing.ui_markers,
                ResourceKind.API_CONTEXT: routing.api_markers,
                ResourceKind.DB_CONNECTION: routing.db_markers,
            },
            mixed_markers=routing.mixed_markers,
            environment_markers=routing.environment_markers,
            data_source_markers=routing.data_source_markers,
        )

    def resolve(self, tags: Iterable[str]) -> RoutingDecision:
        """Resolve a tag set.

        Args:
            tags: Scenario tags, with or without a leading '@'

        Returns:
            RoutingDecision with required kinds, profile and data source

        Raises:
            RoutingConflict: If more than one environment or data source
                marker is present
        """
        normalized = {normalize_tag(t) for t in tags if t and t.strip()}

        if normalized & self.mixed_markers:
            kinds = frozenset(ResourceKind)
        else:
            kinds = frozenset(
                kind for kind, markers in self.markers.items() if normalized & markers
            )

        environments = normalized & self.environment_markers
        if len(environments) > 1:
            raise RoutingConflict("environment", environments)
        profile = next(iter(environments)) if environments else self.default_profile

        sources = normalized & self.data_source_markers
        if len(sources) > 1:
            raise RoutingConflict("data source", sources)
        data_source = next(iter(sources)) if sources else None

        decision = RoutingDecision(kinds=kinds, profile=profile, data_source=data_source)
        logger.debug(
            f"Routed tags {sorted(normalized)} -> "
            f"{[k.value for k in decision.ordered_kinds]} (profile={profile})"
        )
        return decision
