"""Resource factory contract used by the worker resource pool."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Hashable

if TYPE_CHECKING:
    from rigger.config.schema import ProfileConfig
    from rigger.core.models import ResourceKind


class ResourceFactory(ABC):
    """Builds, checks and closes one kind of resource handle."""

    kind: "ResourceKind"

    @abstractmethod
    def create(self, profile: ProfileConfig) -> Any:
        """Create a live handle for the given environment profile."""

    def is_valid(self, handle: Any) -> bool:
        """Return True if the handle can be reused."""
        return True

    @abstractmethod
    def close(self, handle: Any) -> None:
        """Close the handle. May raise; the pool logs and swallows."""


class TokenResourceFactory(ResourceFactory):
    """Factory whose handle wraps a shareable authentication token.

    The pool fetches the token through the process-wide token cache and
    passes it to create().
    """

    @abstractmethod
    def fetch_token(self, profile: ProfileConfig) -> str:
        """Perform the credential exchange and return a token."""

    def requires_token(self, profile: ProfileConfig) -> bool:
        """Return False for profiles that use the resource anonymously."""
        return True

    def token_key(self, profile: ProfileConfig) -> Hashable:
        """Cache key identifying the account a token belongs to."""
        return (profile.name, profile.auth_url, profile.username)

    @abstractmethod
    def create(self, profile: ProfileConfig, token: str = "") -> Any:
        """Create a handle carrying the token."""
