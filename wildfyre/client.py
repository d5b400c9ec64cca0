"""
The WildFyre client: owns the session, the caches and the background pool.

Usage:
    client = WildFyre()
    client.set_connectivity_error_handler(on_offline)
    client.set_entity_not_found_handler(on_missing)

    me = client.connect("username", "password")
    area = client.areas.get("fun")
    post = area.post(42)
"""
import logging
import threading
from typing import Any, Dict, Optional

from config.settings import Settings, settings as default_settings
from wildfyre.areas import Areas
from wildfyre.cache import (
    EntityKind,
    EntityStore,
    ErrorHandlers,
    ExpirationPolicy,
    RefreshCoordinator,
    build_policies,
)
from wildfyre.cache.handlers import ConnectivityErrorHandler, EntityNotFoundHandler
from wildfyre.errors import (
    INVALID_CREDENTIALS_DETAIL,
    InvalidCredentials,
    TransferError,
)
from wildfyre.schemas import AuthToken, Identity, parse_document
from wildfyre.transport import Method, Transport
from wildfyre.users import LoggedUser, Users

logger = logging.getLogger("wildfyre.client")


class Session:
    """
    Authentication token and logged-in user ID.

    Any change to either one empties every cache: cached data may depend on
    who is asking. Each change also bumps `generation`, so that background
    refreshes started before the change do not store their result.
    """

    def __init__(self, client: "WildFyre"):
        self._client = client
        self._token: Optional[str] = None
        self._user_id: Optional[int] = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        """Number of token or user changes so far."""
        return self._generation

    @property
    def token(self) -> Optional[str]:
        return self._token

    @token.setter
    def token(self, token: Optional[str]) -> None:
        if token is not None and not token:
            raise ValueError("The token should not be empty")
        with self._lock:
            self._token = token
            self._generation += 1
        self._client.clear()

    @property
    def user_id(self) -> Optional[int]:
        return self._user_id

    @user_id.setter
    def user_id(self, user_id: Optional[int]) -> None:
        with self._lock:
            self._user_id = user_id
            self._generation += 1
        self._client.clear()

    def reset(self) -> None:
        """Forget the token and the user, and empty every cache."""
        with self._lock:
            self._token = None
            self._user_id = None
            self._generation += 1
        self._client.clear()


class WildFyre:
    """
    Entry point of the library.

    One instance holds everything: the session, one store and one expiration
    policy per entity kind, the background refresh pool and the error
    handlers. Use several instances for several independent sessions.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the client.

        Args:
            transport: Transport to the API, built from settings if omitted
            settings: Configuration, defaults to the environment's
        """
        self.settings = settings or default_settings
        self.transport = transport or Transport(
            base_url=self.settings.api_base_url,
            timeout=self.settings.request_timeout_seconds,
            retry_attempts=self.settings.connect_retry_attempts,
            max_concurrent_requests=self.settings.max_concurrent_requests,
        )

        self.policies: Dict[EntityKind, ExpirationPolicy] = build_policies({
            EntityKind.USER: self.settings.user_ttl_seconds,
            EntityKind.AREA: self.settings.area_ttl_seconds,
            EntityKind.POST: self.settings.post_ttl_seconds,
            EntityKind.DRAFT: self.settings.draft_ttl_seconds,
        })
        self.stores: Dict[EntityKind, EntityStore] = {
            kind: EntityStore(kind) for kind in EntityKind
        }

        self.session = Session(self)
        self.handlers = ErrorHandlers()
        self.coordinator = RefreshCoordinator(
            self.handlers,
            max_workers=self.settings.refresh_workers,
            generation=lambda: self.session.generation,
        )

        self.users = Users(self)
        self.areas = Areas(self)

    # ========================================================================
    # Session
    # ========================================================================

    def connect(self, username: str, password: str) -> LoggedUser:
        """
        Log in with a username and a password, in the current thread.

        Returns:
            The logged-in user

        Raises:
            InvalidCredentials: If the server rejects the credentials
            ConnectivityError: If the server cannot be reached
            TransferError: If the server refuses the request for another reason
        """
        try:
            data = self.transport.request(
                Method.POST,
                "/account/auth/",
                body={"username": username, "password": password},
            )
        except TransferError as e:
            if e.mentions(INVALID_CREDENTIALS_DETAIL):
                raise InvalidCredentials(f"Cannot log in as {username!r}") from e
            raise

        token = parse_document(AuthToken, data).token
        logger.info(f"Logged in as {username!r}")
        return self.connect_with_token(token)

    def connect_with_token(self, token: str) -> LoggedUser:
        """
        Log in with a token obtained earlier, in the current thread.

        Returns:
            The logged-in user

        Raises:
            ValueError: If the token is empty
            ConnectivityError: If the server cannot be reached
            TransferError: If the server refuses the token
        """
        if token is None:
            raise ValueError("Cannot connect with the token None")

        self.session.reset()
        self.session.token = token
        try:
            data = self.fetch("/users/")
            self.session.user_id = parse_document(Identity, data).user
            return self.users.me()
        except Exception:
            self.session.reset()
            raise

    def disconnect(self) -> None:
        """Forget the logged-in user and empty every cache."""
        self.session.reset()
        logger.info("Disconnected")

    @property
    def is_connected(self) -> bool:
        """
        Whether a connect() call succeeded. This does not check that the
        token is still accepted by the server.
        """
        return self.session.token is not None

    def me(self) -> LoggedUser:
        return self.users.me()

    # ========================================================================
    # Requests
    # ========================================================================

    def request(self, method: Method, path: str, body: Optional[Any] = None) -> Any:
        """Send an authenticated request with the session's token."""
        return self.transport.request(method, path, token=self.session.token, body=body)

    def fetch(self, path: str) -> Any:
        """Authenticated GET."""
        return self.request(Method.GET, path)

    # ========================================================================
    # Cache
    # ========================================================================

    def clear(self) -> int:
        """
        Empty every store. The session is kept.

        Returns:
            Number of entities removed
        """
        return sum(store.clear() for store in self.stores.values())

    def clean(self) -> int:
        """
        Remove every expired entity, of every kind.

        Returns:
            Number of entities removed
        """
        return sum(store.remove_expired() for store in self.stores.values())

    def set_connectivity_error_handler(self, handler: ConnectivityErrorHandler) -> bool:
        return self.handlers.set_connectivity_error_handler(handler)

    def set_entity_not_found_handler(self, handler: EntityNotFoundHandler) -> bool:
        return self.handlers.set_entity_not_found_handler(handler)

    def get_stats(self) -> Dict[str, Any]:
        """Cache sizes and refresh statistics."""
        return {
            "entries": {kind.value: len(store) for kind, store in self.stores.items()},
            "coordinator": self.coordinator.get_stats(),
        }

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def shutdown(self, wait: bool = True) -> None:
        """Stop the background pool and close the transport."""
        self.coordinator.shutdown(wait=wait)
        self.transport.close()

    def __enter__(self) -> "WildFyre":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
