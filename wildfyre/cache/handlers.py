"""
Error handlers for failures that happen in background tasks.

A background refresh has no caller to raise into, so its ConnectivityError
and EntityNotFound are handed to callbacks registered by the application.
Each callback can be registered once; reporting an error without the
matching callback is a setup mistake and fails loudly.
"""
import logging
import threading
from typing import Callable, Optional

from wildfyre.errors import (
    ConnectivityError,
    EntityNotFound,
    HandlerNotRegisteredError,
)

logger = logging.getLogger("cache.handlers")

ConnectivityErrorHandler = Callable[[ConnectivityError], None]
EntityNotFoundHandler = Callable[[EntityNotFound], None]


class ErrorHandlers:
    """Single-registration callbacks for background failures."""

    def __init__(self):
        self._connectivity: Optional[ConnectivityErrorHandler] = None
        self._not_found: Optional[EntityNotFoundHandler] = None
        self._lock = threading.Lock()

    def set_connectivity_error_handler(self, handler: ConnectivityErrorHandler) -> bool:
        """
        Register the callback receiving ConnectivityErrors.

        Returns:
            True if registered, False if a handler was already set (the new
            one is ignored)
        """
        with self._lock:
            if self._connectivity is not None:
                logger.warning("Connectivity error handler already registered, ignoring the new one")
                return False
            self._connectivity = handler
            return True

    def set_entity_not_found_handler(self, handler: EntityNotFoundHandler) -> bool:
        """
        Register the callback receiving EntityNotFound errors.

        Returns:
            True if registered, False if a handler was already set (the new
            one is ignored)
        """
        with self._lock:
            if self._not_found is not None:
                logger.warning("Entity-not-found handler already registered, ignoring the new one")
                return False
            self._not_found = handler
            return True

    @property
    def has_connectivity_error_handler(self) -> bool:
        return self._connectivity is not None

    @property
    def has_entity_not_found_handler(self) -> bool:
        return self._not_found is not None

    def report_connectivity_error(self, error: ConnectivityError) -> None:
        """
        Hand a ConnectivityError to the registered handler.

        Raises:
            HandlerNotRegisteredError: If no handler was registered
        """
        handler = self._connectivity
        if handler is None:
            logger.critical(f"No connectivity error handler registered to receive: {error}")
            raise HandlerNotRegisteredError(
                "A connectivity error occurred but no handler was registered, "
                "call set_connectivity_error_handler()"
            ) from error
        handler(error)

    def report_entity_not_found(self, error: EntityNotFound) -> None:
        """
        Hand an EntityNotFound to the registered handler.

        Raises:
            HandlerNotRegisteredError: If no handler was registered
        """
        handler = self._not_found
        if handler is None:
            logger.critical(f"No entity-not-found handler registered to receive: {error}")
            raise HandlerNotRegisteredError(
                "An entity was not found but no handler was registered, "
                "call set_entity_not_found_handler()"
            ) from error
        handler(error)
