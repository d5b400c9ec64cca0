"""
Users: read-only profiles, and the editable profile of the logged-in user.
"""
import logging
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from urllib.parse import urlparse

from wildfyre.cache import Entity, EntityKind, EntityStore, ExpirationPolicy
from wildfyre.errors import InvalidDocumentError, NotConnectedError
from wildfyre.schemas import UserDocument, parse_document
from wildfyre.transport import Method

if TYPE_CHECKING:
    from wildfyre.client import WildFyre
    from wildfyre.posts import Post

logger = logging.getLogger("wildfyre.users")


class User(Entity):
    """A WildFyre user, as seen by the logged-in user."""

    kind = EntityKind.USER

    def __init__(self, client: "WildFyre", user_id: int):
        super().__init__(client)
        self._id = user_id
        self._name = ""
        self._avatar: Optional[str] = None
        self._bio = ""
        self._banned = False

    @staticmethod
    def create(client: "WildFyre", user_id: int) -> "User":
        """Build the right kind of user for an ID."""
        if client.users.is_my_id(user_id):
            return LoggedUser(client, user_id)
        return User(client, user_id)

    @property
    def key(self) -> int:
        return self._id

    # ========================================================================
    # Updating
    # ========================================================================

    def update(self) -> None:
        data = self._fetch(f"/users/{self._id}/")
        self._apply(parse_document(UserDocument, data))
        self.touch()

    def _apply(self, document: UserDocument) -> None:
        if document.user != self._id:
            raise InvalidDocumentError(f"The ID of user {self._id} changed to {document.user}")

        self._name = document.name
        self._avatar = document.avatar
        self._bio = document.bio
        self._banned = document.banned

    # ========================================================================
    # Getters
    # ========================================================================

    @property
    def id(self) -> int:
        self.touch()
        return self._id

    @property
    def name(self) -> str:
        self.touch()
        return self._name

    @property
    def avatar(self) -> Optional[str]:
        """Raw URL of the avatar, as sent by the server."""
        self.touch()
        return self._avatar

    @property
    def avatar_url(self):
        """Parsed URL of the avatar, or None if the user has none."""
        self.touch()
        if self._avatar is None:
            return None
        return urlparse(self._avatar)

    @property
    def bio(self) -> str:
        self.touch()
        return self._bio

    @property
    def is_banned(self) -> bool:
        self.touch()
        return self._banned

    @property
    def can_edit(self) -> bool:
        """Whether this user's profile can be modified (only your own)."""
        return False

    def as_logged(self) -> "LoggedUser":
        """
        This user, as the logged-in user.

        Raises:
            TypeError: If this is not the logged-in user (see `can_edit`)
        """
        self.touch()
        if not isinstance(self, LoggedUser):
            raise TypeError(f"User {self._id} is not the logged-in user")
        return self

    def __eq__(self, other: Any) -> bool:
        if self is other:
            return True
        if type(self) is not type(other):
            return False
        return (
            self._id == other._id
            and self._name == other._name
            and self._avatar == other._avatar
            and self._bio == other._bio
            and self._banned == other._banned
        )

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id}, name={self._name!r}, banned={self._banned})"


class LoggedUser(User):
    """
    The logged-in user, whose profile can be edited.

    Edits use client-side prediction: the new values are visible at once,
    and the request is sent in the background. If the request fails the
    error goes to the registered handlers and the local values are kept.
    """

    @property
    def can_edit(self) -> bool:
        return True

    def set(
        self,
        name: Optional[str] = None,
        bio: Optional[str] = None,
        avatar: Optional[str] = None,
    ) -> Future:
        """
        Change the name, bio and/or avatar of the user.

        Args:
            name: New name, or None to keep it
            bio: New bio, or None to keep it
            avatar: New avatar URL, or None to keep it

        Returns:
            Future of the background request

        Raises:
            ValueError: If every argument is None
        """
        patch: Dict[str, Any] = {}

        if name is not None:
            self._name = name
            patch["name"] = name
        if bio is not None:
            self._bio = bio
            patch["bio"] = bio
        if avatar is not None:
            self._avatar = avatar
            patch["avatar"] = avatar

        if not patch:
            raise ValueError("Every provided parameter was None, at least one should not be")

        self.touch()

        def send_patch():
            self._client.request(Method.PATCH, "/users/", body=patch)
            self.update()

        logger.info(f"Editing user {self._id}: {sorted(patch)}")
        return self._client.coordinator.submit(send_patch)

    def set_name(self, name: str) -> Future:
        return self.set(name=name)

    def set_bio(self, bio: str) -> Future:
        return self.set(bio=bio)

    def set_avatar(self, avatar: str) -> Future:
        return self.set(avatar=avatar)

    def posts(self) -> List["Post"]:
        """
        Every post of this user, in every area.

        Only the posts listed by `Area.load_own_posts` are known.
        """
        self.touch()
        return [
            post
            for area in self._client.areas.collection()
            for post in area.own_posts()
        ]


class Users:
    """Access to the cached users of a client."""

    def __init__(self, client: "WildFyre"):
        self._client = client

    @property
    def store(self) -> EntityStore[User]:
        return self._client.stores[EntityKind.USER]

    @property
    def policy(self) -> ExpirationPolicy:
        return self._client.policies[EntityKind.USER]

    def get(self, user_id: int) -> Optional[User]:
        """
        Get a user from the cache, or from the server.

        If the user is cached this returns at once (refreshing in the
        background when stale); otherwise the server is queried in the
        current thread.

        Returns:
            The user, or None if it does not exist or cannot be fetched
        """
        return self._client.coordinator.lookup(
            self.store,
            user_id,
            lambda: User.create(self._client, user_id),
        )

    def get_cached(self, user_id: int) -> Optional[User]:
        """Get a user from the cache only. Does not count as a use."""
        return self.store.get_cached(user_id)

    def me(self) -> LoggedUser:
        """
        The logged-in user.

        Raises:
            NotConnectedError: If no user is logged in
            ConnectivityError: If the profile is not cached and the server
                cannot be reached
        """
        user_id = self.my_id
        if user_id is None:
            raise NotConnectedError("No user is logged in, call connect() first")

        user = self._client.coordinator.lookup(
            self.store,
            user_id,
            lambda: LoggedUser(self._client, user_id),
            strict=True,
        )
        return user.as_logged()

    @property
    def my_id(self) -> Optional[int]:
        return self._client.session.user_id

    def is_my_id(self, user_id: int) -> bool:
        my_id = self.my_id
        if my_id is None:
            logger.warning("Checking the logged-in user's ID while no user is logged in")
            return False
        return my_id == user_id

    def clear(self) -> int:
        return self.store.clear()

    def clean(self) -> int:
        """Remove the users that have expired."""
        return self.store.remove_expired()
