"""Worker-scoped resource pool and the shared authentication token cache."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Hashable, List, Mapping, Optional

from rigger.core.errors import ConfigurationError, SetupFailure, TeardownFailure
from rigger.core.models import ResourceKind
from rigger.resources.base import ResourceFactory, TokenResourceFactory

if TYPE_CHECKING:
    from rigger.config.schema import ProfileConfig

logger = logging.getLogger(__name__)


class TokenCache:
    """Process-wide authentication token cache.

    Workers that log in with the same account share one token. The
    "check cache, else fetch and populate" sequence runs under a single
    lock so concurrent workers never issue duplicate logins. Tokens never
    expire on their own; call invalidate() to force a fresh login.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tokens: Dict[Hashable, str] = {}

    def get_or_fetch(self, key: Hashable, fetch: Callable[[], str]) -> str:
        """Return the cached token for key, fetching it once if absent."""
        with self._lock:
            token = self._tokens.get(key)
            if token:
                return token
            logger.info(f"Fetching authentication token for {key!r}")
            token = fetch()
            if not token:
                raise ValueError("Token fetch returned an empty token")
            self._tokens[key] = token
            return token

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            if self._tokens.pop(key, None) is not None:
                logger.info(f"Token invalidated for {key!r}")

    def clear(self) -> None:
        with self._lock:
            self._tokens.clear()
        logger.info("All tokens cleared")

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._tokens


@dataclass
class PoolEntry:
    """Live handle held for one (worker, kind) pair.

    Attributes
    ----------
    kind : ResourceKind
        Kind of resource held.
    handle : Any
        The live resource handle.
    profile : str
        Environment profile the handle was built for.
    is_valid : Callable[[Any], bool]
        Validity predicate checked before reuse.
    created_at : float
        Creation timestamp in seconds since the epoch.
    invalidated : bool
        Set by WorkerResourcePool.invalidate(); forces recreation.
    token_key : Hashable | None
        Token cache key for handles built from a shared token.
    """

    kind: ResourceKind
    handle: Any
    profile: str
    is_valid: Callable[[Any], bool]
    created_at: float = field(default_factory=time.time)
    invalidated: bool = False
    token_key: Optional[Hashable] = None

    def usable(self, profile: str) -> bool:
        if self.invalidated or self.profile != profile:
            return False
        try:
            return bool(self.is_valid(self.handle))
        except Exception as e:
            logger.warning(f"Validity check for {self.kind.value} raised: {e}")
            return False


class WorkerResourcePool:
    """Holds at most one handle per (worker, resource kind).

    Entries are partitioned by worker id; a worker only ever touches its own
    partition, so no lock is taken on the acquire/release path. The only
    shared state is the injected TokenCache used for API contexts.
    """

    def __init__(
        self,
        factories: Mapping[ResourceKind, ResourceFactory],
        token_cache: Optional[TokenCache] = None,
    ):
        self._factories = dict(factories)
        self.token_cache = token_cache if token_cache is not None else TokenCache()
        self._entries: Dict[str, Dict[ResourceKind, PoolEntry]] = {}

    def acquire(self, worker_id: str, kind: ResourceKind, profile: ProfileConfig) -> Any:
        """Return the worker's handle for kind, creating it if needed.

        Args:
            worker_id: Identity of the calling worker
            kind: Resource kind to acquire
            profile: Environment profile the handle must belong to

        Returns:
            Live resource handle

        Raises:
            SetupFailure: If the factory could not build the resource
        """
        partition = self._entries.setdefault(worker_id, {})
        entry = partition.get(kind)

        if entry is not None:
            if entry.usable(profile.name):
                logger.debug(f"[{worker_id}] Reusing {kind.value}")
                return entry.handle
            logger.info(f"[{worker_id}] Recreating stale {kind.value}")
            self.release(worker_id, kind)

        logger.info(f"[{worker_id}] Creating {kind.value} (profile={profile.name})")
        token_key: Optional[Hashable] = None
        try:
            factory = self._factory(kind)
            if isinstance(factory, TokenResourceFactory) and factory.requires_token(profile):
                token_key = factory.token_key(profile)
                token = self.token_cache.get_or_fetch(
                    token_key,
                    lambda: factory.fetch_token(profile),
                )
                handle = factory.create(profile, token=token)
            else:
                handle = factory.create(profile)
        except Exception as e:
            logger.error(f"[{worker_id}] Failed to create {kind.value}: {e}")
            raise SetupFailure(kind, e) from e

        partition[kind] = PoolEntry(
            kind=kind,
            handle=handle,
            profile=profile.name,
            is_valid=factory.is_valid,
            token_key=token_key,
        )
        return handle

    def release(self, worker_id: str, kind: ResourceKind) -> None:
        """Close the worker's handle for kind and drop the entry.

        Close errors are logged and swallowed.
        """
        partition = self._entries.get(worker_id)
        if not partition:
            return
        entry = partition.pop(kind, None)
        if entry is None:
            return

        try:
            self._factory(kind).close(entry.handle)
            logger.info(f"[{worker_id}] Released {kind.value}")
        except Exception as e:
            failure = TeardownFailure(kind, worker_id, e)
            logger.warning(str(failure))

    def release_all(self, worker_id: str) -> None:
        """Release every resource the worker holds and forget the worker."""
        partition = self._entries.get(worker_id)
        if partition:
            for kind in list(partition):
                self.release(worker_id, kind)
        self._entries.pop(worker_id, None)
        logger.debug(f"[{worker_id}] Pool partition cleared")

    def invalidate(self, worker_id: str, kind: ResourceKind) -> None:
        """Mark the worker's handle stale so the next acquire recreates it.

        For API contexts the shared token is dropped too, forcing a fresh
        credential exchange.
        """
        entry = self.get_entry(worker_id, kind)
        if entry is None:
            return
        entry.invalidated = True
        logger.info(f"[{worker_id}] Invalidated {kind.value}")
        if entry.token_key is not None:
            self.token_cache.invalidate(entry.token_key)

    def has(self, worker_id: str, kind: ResourceKind) -> bool:
        return kind in self._entries.get(worker_id, {})

    def get_entry(self, worker_id: str, kind: ResourceKind) -> Optional[PoolEntry]:
        return self._entries.get(worker_id, {}).get(kind)

    def workers(self) -> List[str]:
        """Worker ids currently holding a partition."""
        return list(self._entries)

    def _factory(self, kind: ResourceKind) -> ResourceFactory:
        factory = self._factories.get(kind)
        if factory is None:
            raise ConfigurationError(f"No factory registered for {kind.value}")
        return factory
