"""Resource factories for UI, API and database scenarios."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict

from rigger.resources.base import ResourceFactory, TokenResourceFactory

if TYPE_CHECKING:
    from rigger.config.schema import RiggerConfig
    from rigger.core.models import ResourceKind


def build_factories(config: RiggerConfig) -> Dict["ResourceKind", ResourceFactory]:
    """Create the default factory for every resource kind."""
    from rigger.resources.api import ApiContextFactory
    from rigger.resources.browser import BrowserSessionFactory
    from rigger.resources.database import DatabaseConnectionFactory

    factories = [
        BrowserSessionFactory(config.browser),
        ApiContextFactory(config.api),
        DatabaseConnectionFactory(config.database),
    ]
    return {factory.kind: factory for factory in factories}


__all__ = ["ResourceFactory", "TokenResourceFactory", "build_factories"]
