"""
Posts, drafts and comments.

A Post is read-only. A Draft is an unpublished post that can be edited,
saved, published and deleted. Comments only exist inside a Post and are
rebuilt every time the Post is updated.
"""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from wildfyre.cache import Entity, EntityKind
from wildfyre.errors import InvalidDraftStateError, NotConnectedError
from wildfyre.schemas import CommentDocument, PostDocument, parse_document
from wildfyre.transport import Method

if TYPE_CHECKING:
    from wildfyre.areas import Area
    from wildfyre.client import WildFyre
    from wildfyre.users import User

logger = logging.getLogger("wildfyre.posts")


class Comment:
    """
    A comment on a post.

    Comments are immutable; they are replaced, never edited, when their post
    is updated.
    """

    def __init__(self, client: "WildFyre", area_name: str, post_id: int, document: CommentDocument):
        self._client = client
        self._area_name = area_name
        self._post_id = post_id
        self._id = document.id
        self._author_id = document.author.user if document.author is not None else None
        self._created = document.created
        self._text = document.text
        self._image_url = document.image

    @property
    def id(self) -> int:
        return self._id

    @property
    def created(self) -> datetime:
        return self._created

    @property
    def text(self) -> str:
        return self._text

    @property
    def image_url(self) -> Optional[str]:
        return self._image_url

    @property
    def author_id(self) -> Optional[int]:
        return self._author_id

    def author(self) -> Optional["User"]:
        """The user who wrote this comment, or None if it was deleted."""
        if self._author_id is None:
            return None
        return self._client.users.get(self._author_id)

    def area(self) -> Optional["Area"]:
        return self._client.areas.get(self._area_name)

    def post(self) -> Optional["Post"]:
        """The post this comment belongs to."""
        area = self.area()
        if area is None:
            return None
        return area.post(self._post_id)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Comment):
            return False
        return (
            self._id == other._id
            and self._area_name == other._area_name
            and self._post_id == other._post_id
            and self._author_id == other._author_id
            and self._created == other._created
            and self._text == other._text
            and self._image_url == other._image_url
        )

    def __hash__(self) -> int:
        return hash((self._area_name, self._post_id, self._id))

    def __repr__(self) -> str:
        return f"Comment(id={self._id}, post={self._area_name}/{self._post_id}, author={self._author_id})"


class PostData(Entity):
    """Fields and getters shared by posts and drafts."""

    def __init__(self, client: "WildFyre", area_name: str, post_id: Optional[int]):
        super().__init__(client)
        if not area_name:
            raise ValueError(f"The area name should not be empty: {area_name!r}")

        self._area_name = area_name
        self._post_id = post_id
        self._is_anonymous = False
        self._has_subscribed = True
        self._created = datetime.now(timezone.utc)
        self._is_active = True
        self._text: Optional[str] = None
        self._image_url: Optional[str] = None
        self._additional_images: List[str] = []
        self._author_id: Optional[int] = client.users.my_id
        self._comments: List[Comment] = []

    @property
    def key(self) -> Tuple[str, Optional[int]]:
        return (self._area_name, self._post_id)

    def _apply(self, document: PostDocument, with_comments: bool) -> None:
        """Copy a server document into this object. The area is not part of it."""
        self._post_id = document.id
        self._author_id = document.author.user if document.author is not None else None
        self._is_anonymous = document.anonym
        self._has_subscribed = document.subscribed
        self._created = document.created
        self._is_active = document.active
        self._text = document.text
        self._image_url = document.image
        self._additional_images = list(document.additional_images)
        if with_comments:
            self._comments = [
                Comment(self._client, self._area_name, document.id, c)
                for c in document.comments
            ]

    # ========================================================================
    # Getters
    # ========================================================================

    @property
    def id(self) -> Optional[int]:
        self.touch()
        return self._post_id

    @property
    def area_name(self) -> str:
        self.touch()
        return self._area_name

    @property
    def is_anonymous(self) -> bool:
        """
        Whether this post is anonymous.

        A post whose author was deleted is not anonymous, but has no author
        either (see `is_author_deleted`).
        """
        self.touch()
        return self._is_anonymous

    @property
    def has_subscribed(self) -> bool:
        self.touch()
        return self._has_subscribed

    @property
    def created(self) -> datetime:
        """Creation time, in UTC."""
        self.touch()
        return self._created

    @property
    def created_local_time(self) -> datetime:
        self.touch()
        return self._created.astimezone()

    @property
    def is_active(self) -> bool:
        """Whether this post still spreads to new users."""
        self.touch()
        return self._is_active

    @property
    def text(self) -> Optional[str]:
        """Text of the post, in Markdown."""
        self.touch()
        return self._text

    @property
    def image_url(self) -> Optional[str]:
        self.touch()
        return self._image_url

    @property
    def additional_images(self) -> List[str]:
        self.touch()
        return list(self._additional_images)

    @property
    def author_id(self) -> Optional[int]:
        self.touch()
        return self._author_id

    def author(self) -> Optional["User"]:
        """The author, or None if the post is anonymous or the author was deleted."""
        self.touch()
        if self._author_id is None:
            return None
        return self._client.users.get(self._author_id)

    def is_author_deleted(self) -> bool:
        return not self.is_anonymous and self.author() is None

    def area(self) -> Optional["Area"]:
        self.touch()
        return self._client.areas.get(self._area_name)

    def __eq__(self, other: Any) -> bool:
        if self is other:
            return True
        if type(self) is not type(other):
            return False
        return (
            self.key == other.key
            and self._author_id == other._author_id
            and self._is_anonymous == other._is_anonymous
            and self._has_subscribed == other._has_subscribed
            and self._is_active == other._is_active
            and self._created == other._created
            and self._text == other._text
            and self._image_url == other._image_url
            and self._additional_images == other._additional_images
            and self._comments == other._comments
        )

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(area={self._area_name!r}, id={self._post_id}, "
            f"author={self._author_id}, anonymous={self._is_anonymous})"
        )


class Post(PostData):
    """
    A published post. Read-only.

    To create a post, create a Draft with `Area.draft()` and publish it.
    """

    kind = EntityKind.POST

    def __init__(self, client: "WildFyre", area_name: str, post_id: int):
        if post_id < 0:
            raise ValueError(f"The ID of a post cannot be negative: {post_id}")
        super().__init__(client, area_name, post_id)

    @classmethod
    def from_document(cls, client: "WildFyre", area_name: str, document: PostDocument) -> "Post":
        """Build an already populated post."""
        post = cls(client, area_name, document.id)
        post._apply(document, with_comments=True)
        post.touch()
        return post

    def update(self) -> None:
        data = self._fetch(f"/areas/{self._area_name}/{self._post_id}/")
        self._apply(parse_document(PostDocument, data), with_comments=True)
        self.touch()

    @property
    def comments(self) -> List[Comment]:
        self.touch()
        return list(self._comments)


class DraftState(Enum):
    """Where a draft stands in its lifecycle."""
    LOCAL_ONLY = "local_only"        # never saved server-side
    SERVER_BACKED = "server_backed"  # has a server-side ID
    PUBLISHED = "published"          # became a Post
    DELETED = "deleted"


class Draft(PostData):
    """
    An unpublished post.

    Lifecycle:
        LOCAL_ONLY --save()-->    SERVER_BACKED
        LOCAL_ONLY --publish()--> PUBLISHED (a Post is returned)
        LOCAL_ONLY --delete()-->  DELETED (cache only)
        SERVER_BACKED --publish()--> PUBLISHED
        SERVER_BACKED --delete()-->  DELETED (server and cache)

    Setters return the draft itself, to allow chaining:
        area.draft().set_text("Hello").set_anonymous(False).save()
    """

    kind = EntityKind.DRAFT

    def __init__(self, client: "WildFyre", area_name: str, draft_id: Optional[int] = None):
        """
        Create a draft.

        Args:
            client: The client owning the caches
            area_name: Area the draft will be published in
            draft_id: ID of an existing server-side draft, or None for a new
                local draft
        """
        if draft_id is None and client.users.my_id is None:
            raise NotConnectedError("Creating a draft requires a logged-in user")
        if draft_id is not None and draft_id <= 0:
            raise ValueError(f"The draft ID should be a positive integer: {draft_id}")

        super().__init__(client, area_name, draft_id)
        self._state = DraftState.LOCAL_ONLY if draft_id is None else DraftState.SERVER_BACKED

    @classmethod
    def from_document(cls, client: "WildFyre", area_name: str, document: PostDocument) -> "Draft":
        """Build an already populated server-side draft."""
        draft = cls(client, area_name, document.id)
        draft._apply(document, with_comments=False)
        draft.touch()
        return draft

    @property
    def state(self) -> DraftState:
        return self._state

    @property
    def is_local_only(self) -> bool:
        return self._state == DraftState.LOCAL_ONLY

    def _require_editable(self) -> None:
        if self._state in (DraftState.PUBLISHED, DraftState.DELETED):
            raise InvalidDraftStateError(f"This draft was already {self._state.value}: {self!r}")

    # ========================================================================
    # Setters
    # ========================================================================

    def set_text(self, text: str) -> "Draft":
        self._require_editable()
        self._text = text
        self.touch()
        return self

    def set_anonymous(self, is_anonymous: bool) -> "Draft":
        self._require_editable()
        self._is_anonymous = is_anonymous
        self.touch()
        return self

    def subscribe(self) -> "Draft":
        self._require_editable()
        self._has_subscribed = True
        self.touch()
        return self

    def unsubscribe(self) -> "Draft":
        self._require_editable()
        self._has_subscribed = False
        self.touch()
        return self

    def to_document(self) -> Dict[str, Any]:
        """
        The JSON body describing this draft to the server. The ID, author,
        comments and activity are not part of it.
        """
        document: Dict[str, Any] = {
            "anonym": self._is_anonymous,
            "subscribed": self._has_subscribed,
            "text": self._text,
            "additional_images": list(self._additional_images),
        }
        if self._image_url is not None:
            document["image"] = self._image_url
        return document

    # ========================================================================
    # Server operations (all in the current thread)
    # ========================================================================

    def update(self) -> None:
        if self._state != DraftState.SERVER_BACKED:
            # Nothing server-side to read
            self.touch()
            return

        data = self._fetch(f"/areas/{self._area_name}/drafts/{self._post_id}/")
        self._apply(parse_document(PostDocument, data), with_comments=False)
        self.touch()

    def save(self) -> "Draft":
        """
        Save this draft server-side: created the first time, edited after.

        Returns:
            This draft, to allow chaining
        """
        self._require_editable()

        if self._state == DraftState.LOCAL_ONLY:
            data = self._client.request(
                Method.POST, f"/areas/{self._area_name}/drafts/", body=self.to_document()
            )
            self._apply(parse_document(PostDocument, data), with_comments=False)
            self._state = DraftState.SERVER_BACKED
            self.store.put(self.key, self)
            logger.info(f"Draft saved for the first time: {self.key!r}")
        else:
            data = self._client.request(
                Method.PATCH,
                f"/areas/{self._area_name}/drafts/{self._post_id}/",
                body=self.to_document(),
            )
            if data is not None:
                self._apply(parse_document(PostDocument, data), with_comments=False)

        self.touch()
        return self

    def publish(self) -> Post:
        """
        Publish this draft. It does not need to have been saved first.

        Returns:
            The published post, now in the post cache
        """
        self._require_editable()

        if self._state == DraftState.LOCAL_ONLY:
            data = self._client.request(
                Method.POST, f"/areas/{self._area_name}/", body=self.to_document()
            )
        else:
            data = self._client.request(
                Method.POST, f"/areas/{self._area_name}/drafts/{self._post_id}/publish/"
            )

        document = parse_document(PostDocument, data)
        self._evict()
        self._state = DraftState.PUBLISHED

        post = Post.from_document(self._client, self._area_name, document)
        self._client.stores[EntityKind.POST].put(post.key, post)
        logger.info(f"Draft published as post {post.key!r}")
        return post

    def delete(self) -> None:
        """Delete this draft from the cache, and from the server if it was saved."""
        self._require_editable()

        self._evict()
        if self._state == DraftState.SERVER_BACKED:
            self._client.request(
                Method.DELETE, f"/areas/{self._area_name}/drafts/{self._post_id}/"
            )
        self._state = DraftState.DELETED
        logger.info(f"Draft deleted: {self.key!r}")
