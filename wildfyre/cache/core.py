"""
Core cache data structures.
"""
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, Hashable, Optional

from wildfyre.errors import EntityNotFound, TransferError

if TYPE_CHECKING:
    from wildfyre.cache.store import EntityStore
    from wildfyre.cache.ttl_policies import ExpirationPolicy
    from wildfyre.client import WildFyre


class EntityKind(Enum):
    """Kinds of cached entities, each with its own store and expiration policy."""
    USER = "user"
    AREA = "area"
    POST = "post"
    DRAFT = "draft"


def now() -> float:
    """Current time, in seconds since the epoch."""
    return time.time()


class Entity(ABC):
    """
    A locally cached representation of a server-side resource.

    The entity remembers when it was last used. Every successful update and
    every getter call counts as a use (see `touch`), so the freshness window
    is measured from the last access, not from the last fetch.

    Entities never hold references to other cached entities: relations are
    stored as keys and resolved through the client's stores when read.
    """

    kind: EntityKind

    def __init__(self, client: "WildFyre"):
        self._client = client
        self.last_used_at: float = now()
        self._is_new = True

    # ========================================================================
    # Validity
    # ========================================================================

    @property
    @abstractmethod
    def key(self) -> Hashable:
        """Key of this entity in its store."""
        ...

    @property
    def policy(self) -> "ExpirationPolicy":
        """Expiration policy of this entity's kind (read at every check)."""
        return self._client.policies[self.kind]

    @property
    def store(self) -> "EntityStore":
        return self._client.stores[self.kind]

    def is_valid(self, current_time: Optional[float] = None) -> bool:
        """
        Check if this entity is still fresh.

        Args:
            current_time: Timestamp to check against, defaults to now. Pass
                one timestamp when checking many entities in a row.
        """
        if current_time is None:
            current_time = now()
        return current_time - self.last_used_at < self.policy.ttl_seconds

    @property
    def is_new(self) -> bool:
        """True until `touch` is called for the first time."""
        return self._is_new

    def touch(self) -> None:
        """Mark this entity as used now."""
        self.last_used_at = now()
        self._is_new = False

    # ========================================================================
    # Updating
    # ========================================================================

    @abstractmethod
    def update(self) -> None:
        """
        Refresh this entity from the server, in the current thread.

        Raises:
            EntityNotFound: The server says it does not exist; the entity has
                been evicted from its store.
            ConnectivityError: The server could not be reached.
        """
        ...

    def _evict(self) -> None:
        """Remove this entity from its store, if it is the one stored."""
        self.store.remove(self.key, expected=self)

    def _fetch(self, path: str) -> Any:
        """
        GET the document describing this entity.

        A "Not found." refusal evicts this entity and raises EntityNotFound;
        any other error propagates unchanged.
        """
        try:
            return self._client.fetch(path)
        except TransferError as e:
            if e.is_not_found:
                self._evict()
                raise EntityNotFound(self.kind, self.key) from e
            raise
