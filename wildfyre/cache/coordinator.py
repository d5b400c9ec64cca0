"""
Refresh coordination: decides when a lookup blocks on the server, when it
refreshes in the background, and when it just returns the cached entity.
"""
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, Hashable, Optional, Set, TypeVar

from wildfyre.errors import ConnectivityError, EntityNotFound

from .core import Entity
from .handlers import ErrorHandlers
from .store import EntityStore

logger = logging.getLogger("cache.coordinator")

E = TypeVar("E", bound=Entity)


class RefreshCoordinator:
    """
    Stale-while-revalidate lookups over the entity stores.

    - Not cached yet: the entity is fetched in the calling thread before it
      is returned, so callers never see an unpopulated placeholder
    - Cached but stale: returned at once, refreshed in a background thread
    - Cached and fresh: returned at once

    Background refreshes of the same entity are not deduplicated; the last
    one to finish wins.

    The background pool is bounded by `max_workers` (settings.refresh_workers).
    When every worker is busy on a slow request, further refreshes wait in
    the pool's queue rather than starting a new thread.
    """

    def __init__(
        self,
        handlers: ErrorHandlers,
        max_workers: int = 32,
        generation: Optional[Callable[[], int]] = None,
    ):
        """
        Initialize the coordinator.

        Args:
            handlers: Where background failures are reported
            max_workers: Thread pool size for background work
            generation: Returns the current session generation; a refresh
                finishing in a later generation than it started in does not
                store its entity
        """
        self._handlers = handlers
        self._generation = generation or (lambda: 0)
        self.max_workers = max_workers
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="wildfyre-refresh",
        )
        self._pending: Set[Future] = set()
        self._pending_lock = threading.Lock()

        # Stats tracking
        self._stats_lock = threading.Lock()
        self._stats = {
            "hits_fresh": 0,
            "hits_stale": 0,
            "misses": 0,
            "refreshes": 0,
            "refresh_failures": 0,
        }

    # ========================================================================
    # Lookups
    # ========================================================================

    def lookup(
        self,
        store: EntityStore[E],
        key: Hashable,
        factory: Callable[[], E],
        strict: bool = False,
    ) -> Optional[E]:
        """
        Get an entity from its store, refreshing it as needed.

        Args:
            store: Store of the entity's kind
            key: Key of the entity
            factory: Builds a placeholder when the entity is not cached
            strict: Raise the errors of the first fetch instead of
                returning None

        Returns:
            The entity, or None if it does not exist server-side or could not
            be fetched (the ConnectivityError goes to the registered handler)

        Raises:
            EntityNotFound: Only when strict
            ConnectivityError: Only when strict
            HandlerNotRegisteredError: If the server is unreachable and no
                connectivity handler was registered
        """
        entity = store.get_or_create(key, factory)

        if entity.is_new:
            logger.info(f"CACHE MISS: {store.kind.value} {key!r}")
            self._count("misses")
            try:
                entity.update()  # in this thread
            except EntityNotFound:
                logger.info(f"Not found server-side: {store.kind.value} {key!r}")
                if strict:
                    raise
                return None
            except ConnectivityError as e:
                if strict:
                    raise
                # The placeholder stays cached as new, the next lookup retries
                self._handlers.report_connectivity_error(e)
                return None

        elif not entity.is_valid():
            logger.info(f"CACHE HIT (stale, refreshing): {store.kind.value} {key!r}")
            self._count("hits_stale")
            self.submit_update(entity)

        else:
            logger.debug(f"CACHE HIT (fresh): {store.kind.value} {key!r}")
            self._count("hits_fresh")

        entity.touch()
        return entity

    # ========================================================================
    # Background work
    # ========================================================================

    def submit_update(self, entity: Entity) -> Future:
        """
        Refresh an entity in a background thread.

        On success the entity is stored again under its key, even if it was
        evicted while the refresh was running, unless the session changed in
        the meantime.

        Returns:
            Future of the refresh; its result is None once handled
        """
        started_in = self._generation()

        def do_refresh():
            logger.debug(f"Background refresh started: {entity.kind.value} {entity.key!r}")
            entity.update()
            store = entity.store
            store.put(entity.key, entity)
            # The session bumps its generation before clearing the stores
            if self._generation() != started_in:
                store.remove(entity.key, expected=entity)
                logger.info(f"Session changed, dropped refreshed {entity.kind.value} {entity.key!r}")
                return
            self._count("refreshes")
            logger.debug(f"Background refresh complete: {entity.kind.value} {entity.key!r}")

        return self.submit(do_refresh)

    def submit(self, task: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """
        Run a task in a background thread.

        ConnectivityError and EntityNotFound raised by the task are sent to
        the registered handlers. Any other exception is logged and kept on
        the returned future.
        """
        def run():
            try:
                return task(*args, **kwargs)
            except ConnectivityError as e:
                self._count("refresh_failures")
                logger.warning(f"Background task could not reach the server: {e}")
                self._handlers.report_connectivity_error(e)
            except EntityNotFound as e:
                self._count("refresh_failures")
                logger.warning(f"Background task found a missing entity: {e}")
                self._handlers.report_entity_not_found(e)
            except Exception:
                self._count("refresh_failures")
                logger.exception("Background task failed")
                raise
            return None

        future = self._pool.submit(run)
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def wait_for_pending(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every scheduled task has finished.

        Tasks scheduled while waiting are waited for as well, within the same
        timeout.

        Returns:
            True if everything finished, False on timeout
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._pending_lock:
                pending = set(self._pending)
            if not pending:
                return True
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            _, not_done = wait(pending, timeout=remaining)
            if not_done:
                return False

    @property
    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting background work."""
        self._pool.shutdown(wait=wait)

    # ========================================================================
    # Stats
    # ========================================================================

    def _count(self, name: str) -> None:
        with self._stats_lock:
            self._stats[name] += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get lookup and refresh statistics."""
        with self._stats_lock:
            stats = dict(self._stats)
        total_hits = stats["hits_fresh"] + stats["hits_stale"]
        total_lookups = total_hits + stats["misses"]
        hit_rate = (total_hits / total_lookups * 100) if total_lookups > 0 else 0
        stats["hit_rate_percent"] = round(hit_rate, 1)
        stats["pending"] = self.pending_count
        return stats
