"""
Per-kind keyed storage of cached entities.
"""
import logging
import threading
from typing import Callable, Dict, Generic, Hashable, List, Optional, TypeVar

from .core import Entity, EntityKind, now

logger = logging.getLogger("cache.store")

E = TypeVar("E", bound=Entity)


class EntityStore(Generic[E]):
    """
    Thread-safe mapping of key -> entity for one entity kind.

    Each operation is atomic on its own; sequences of operations are not.
    When two threads store an entity under the same key, the last `put` wins.
    """

    def __init__(self, kind: EntityKind):
        self.kind = kind
        self._entries: Dict[Hashable, E] = {}
        self._lock = threading.RLock()

    def get_cached(self, key: Hashable) -> Optional[E]:
        """
        Get the cached entity for a key. Never queries the server, and does
        not count as a use of the entity.
        """
        with self._lock:
            return self._entries.get(key)

    def put(self, key: Hashable, entity: E) -> None:
        with self._lock:
            self._entries[key] = entity

    def get_or_create(self, key: Hashable, factory: Callable[[], E]) -> E:
        """
        Get the cached entity, or create and store a new one.

        Args:
            key: Key of the entity
            factory: Builds the entity when it is not cached

        Returns:
            The entity stored under `key`
        """
        with self._lock:
            entity = self._entries.get(key)
            if entity is None:
                entity = factory()
                self._entries[key] = entity
                logger.debug(f"Created {self.kind.value} placeholder for {key!r}")
            return entity

    def remove(self, key: Hashable, expected: Optional[E] = None) -> Optional[E]:
        """
        Remove the entity stored under a key.

        Args:
            key: Key of the entity
            expected: If given, only remove when this exact object is stored

        Returns:
            The removed entity, or None if nothing was removed
        """
        with self._lock:
            entity = self._entries.get(key)
            if entity is None:
                return None
            if expected is not None and entity is not expected:
                return None
            del self._entries[key]
            return entity

    def remove_if(self, predicate: Callable[[E], bool]) -> int:
        """
        Remove every entity matching a predicate.

        Returns:
            Number of entities removed
        """
        with self._lock:
            to_delete = [k for k, e in self._entries.items() if predicate(e)]
            for key in to_delete:
                del self._entries[key]
        if to_delete:
            logger.info(f"Removed {len(to_delete)} {self.kind.value} entries")
        return len(to_delete)

    def remove_expired(self, current_time: Optional[float] = None) -> int:
        """
        Remove every entity that is not valid anymore.

        The time is read once, before the sweep starts.
        """
        if current_time is None:
            current_time = now()
        return self.remove_if(lambda e: not e.is_valid(current_time))

    def clear(self) -> int:
        """
        Remove all entities.

        Returns:
            Number of entities removed
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        if count:
            logger.info(f"Cleared {count} {self.kind.value} entries")
        return count

    def keys(self) -> List[Hashable]:
        with self._lock:
            return list(self._entries.keys())

    def values(self) -> List[E]:
        with self._lock:
            return list(self._entries.values())

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        return f"EntityStore(kind={self.kind.value}, size={len(self)})"
