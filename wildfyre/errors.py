"""
Exceptions raised by the WildFyre client.

Synchronous calls raise these directly. Background tasks never raise into a
caller: their ConnectivityError / EntityNotFound are routed to the handlers
registered on the client (see cache.handlers).
"""
from typing import TYPE_CHECKING, Any, Hashable, Optional

if TYPE_CHECKING:
    from wildfyre.cache.core import EntityKind


NOT_FOUND_DETAIL = "Not found."
INVALID_CREDENTIALS_DETAIL = "Unable to log in with provided credentials."


class WildFyreError(Exception):
    """Base class for every error raised by this library."""
    pass


class ConnectivityError(WildFyreError):
    """Raised when the server cannot be reached at all."""
    pass


class TransferError(WildFyreError):
    """
    Raised when the server was reached but refused the request.

    The server's JSON error body, when there is one, is kept in `document`.
    """

    def __init__(
        self,
        message: str,
        document: Optional[Any] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.document = document
        self.status_code = status_code

    @property
    def detail(self) -> Optional[str]:
        """The 'detail' message of the error body, if the server sent one."""
        if isinstance(self.document, dict):
            detail = self.document.get("detail")
            if isinstance(detail, str):
                return detail
        return None

    def has_detail(self, detail: str) -> bool:
        """Check whether the server's 'detail' message is exactly `detail`."""
        return self.detail == detail

    @property
    def is_not_found(self) -> bool:
        return self.has_detail(NOT_FOUND_DETAIL)

    def mentions(self, message: str) -> bool:
        """Check whether `message` appears anywhere in the error body."""
        return _contains_message(self.document, message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.document is not None:
            return f"{base} [status={self.status_code}] {self.document}"
        return base


class EntityNotFound(WildFyreError):
    """
    Raised when the server reports that an entity does not exist.

    The missing entity is identified by its kind and key rather than by a
    reference to the (already evicted) object.
    """

    def __init__(self, kind: "EntityKind", key: Hashable, message: Optional[str] = None):
        super().__init__(message or f"No such {kind.value}: {key!r}")
        self.kind = kind
        self.key = key


class InvalidCredentials(WildFyreError):
    """Raised when the server rejects a username/password pair."""
    pass


class InvalidDocumentError(WildFyreError):
    """
    Raised when the server sends a document that does not have the expected
    shape. This means client and server disagree on the API; it is never
    retried.
    """
    pass


class HandlerNotRegisteredError(WildFyreError):
    """Raised when an error must be reported but no handler was registered."""
    pass


class NotConnectedError(WildFyreError):
    """Raised when an operation needs the logged-in identity but there is none."""
    pass


class InvalidDraftStateError(WildFyreError):
    """Raised when a draft is used after being published or deleted."""
    pass


def _contains_message(document: Any, message: str) -> bool:
    if isinstance(document, str):
        return document == message
    if isinstance(document, dict):
        return any(_contains_message(v, message) for v in document.values())
    if isinstance(document, list):
        return any(_contains_message(v, message) for v in document)
    return False
