"""
Areas: the topics posts are published in.
"""
import logging
from typing import TYPE_CHECKING, Any, List, Optional

from wildfyre.cache import Entity, EntityKind, EntityStore, ExpirationPolicy
from wildfyre.errors import InvalidDocumentError
from wildfyre.posts import Draft, Post
from wildfyre.schemas import (
    AreaDocument,
    IdResults,
    PostResults,
    ReputationDocument,
    parse_document,
)

if TYPE_CHECKING:
    from wildfyre.client import WildFyre

logger = logging.getLogger("wildfyre.areas")


class Area(Entity):
    """
    An area, with the logged-in user's reputation and spread in it.

    Posts and drafts of the area live in the client's post and draft stores,
    keyed by (area name, ID); the area only knows their IDs.
    """

    kind = EntityKind.AREA

    def __init__(self, client: "WildFyre", name: str, display_name: Optional[str] = None):
        super().__init__(client)
        if not name:
            raise ValueError(f"The area name should not be empty: {name!r}")

        self._name = name
        self._display_name = display_name or name
        self._reputation: Optional[int] = None
        self._spread: Optional[int] = None
        self._own_post_ids: List[int] = []

    @property
    def key(self) -> str:
        return self._name

    def update(self) -> None:
        data = self._fetch(f"/areas/{self._name}/rep/")
        document = parse_document(ReputationDocument, data)
        self._reputation = document.reputation
        self._spread = document.spread
        self.touch()

    # ========================================================================
    # Getters
    # ========================================================================

    @property
    def name(self) -> str:
        """ID of the area, its name in lowercase."""
        self.touch()
        return self._name

    @property
    def display_name(self) -> str:
        self.touch()
        return self._display_name

    @property
    def reputation(self) -> Optional[int]:
        """Reputation of the logged-in user in this area, None if unknown."""
        self.touch()
        return self._reputation

    @property
    def spread(self) -> Optional[int]:
        """Spread of the logged-in user in this area, None if unknown."""
        self.touch()
        return self._spread

    # ========================================================================
    # Posts
    # ========================================================================

    def post(self, post_id: int) -> Optional[Post]:
        """
        Get a post of this area from the cache, or from the server.

        Returns:
            The post, or None if it does not exist or cannot be fetched
        """
        self.touch()
        return self._client.coordinator.lookup(
            self._client.stores[EntityKind.POST],
            (self._name, post_id),
            lambda: Post(self._client, self._name, post_id),
        )

    def cached_post(self, post_id: int) -> Optional[Post]:
        """Get a post from the cache only."""
        return self._client.stores[EntityKind.POST].get_cached((self._name, post_id))

    def cached_posts(self) -> List[Post]:
        """Every cached post of this area."""
        return [
            p for p in self._client.stores[EntityKind.POST].values()
            if p.key[0] == self._name
        ]

    def load_own_posts(self) -> None:
        """
        Fetch the IDs of the logged-in user's posts in this area, in the
        current thread. The posts themselves are not loaded.
        """
        data = self._client.fetch(f"/areas/{self._name}/own/")
        self._own_post_ids = [r.id for r in parse_document(IdResults, data).results]
        self.touch()
        logger.debug(f"Loaded {len(self._own_post_ids)} own post IDs in {self._name}")

    @property
    def own_post_ids(self) -> List[int]:
        """IDs loaded by `load_own_posts`; empty until then."""
        self.touch()
        return list(self._own_post_ids)

    def own_posts(self) -> List[Post]:
        """The logged-in user's posts in this area, looked up one by one."""
        return [
            post for post in (self.post(i) for i in self.own_post_ids)
            if post is not None
        ]

    # ========================================================================
    # Drafts
    # ========================================================================

    def draft(self) -> Draft:
        """Create a new local draft in this area."""
        self.touch()
        return Draft(self._client, self._name)

    def load_drafts(self) -> List[Draft]:
        """
        Replace the cached drafts of this area with the server's, in the
        current thread. Unsaved local drafts are not affected.
        """
        data = self._client.fetch(f"/areas/{self._name}/drafts/")
        documents = parse_document(PostResults, data).results

        store = self._client.stores[EntityKind.DRAFT]
        store.remove_if(lambda d: d.key[0] == self._name)

        drafts = [Draft.from_document(self._client, self._name, doc) for doc in documents]
        for draft in drafts:
            store.put(draft.key, draft)
        self.touch()
        return drafts

    def drafts(self) -> List[Draft]:
        """Every cached, server-side draft of this area."""
        self.touch()
        return [
            d for d in self._client.stores[EntityKind.DRAFT].values()
            if d.key[0] == self._name
        ]

    def cache_draft(self, draft: Draft) -> None:
        """
        Add a draft to the cache. This does not save it server-side, see
        `Draft.save`.
        """
        if draft.is_local_only:
            raise ValueError("Only drafts saved server-side can be cached")
        self._client.stores[EntityKind.DRAFT].put(draft.key, draft)

    def remove_cached(self, draft: Draft) -> None:
        """
        Remove a draft from the cache. This does not delete it server-side,
        see `Draft.delete`.
        """
        self._client.stores[EntityKind.DRAFT].remove(draft.key, expected=draft)

    def __eq__(self, other: Any) -> bool:
        if self is other:
            return True
        if not isinstance(other, Area):
            return False
        return (
            self._name == other._name
            and self._reputation == other._reputation
            and self._spread == other._spread
        )

    def __hash__(self) -> int:
        return hash(self._name)

    def __repr__(self) -> str:
        return f"Area(name={self._name!r}, reputation={self._reputation}, spread={self._spread})"


class Areas:
    """Access to the cached areas of a client."""

    def __init__(self, client: "WildFyre"):
        self._client = client

    @property
    def store(self) -> EntityStore[Area]:
        return self._client.stores[EntityKind.AREA]

    @property
    def policy(self) -> ExpirationPolicy:
        return self._client.policies[EntityKind.AREA]

    def load(self) -> List[str]:
        """
        Fetch the list of areas, in the current thread.

        Areas not cached yet are added as placeholders, populated on first
        access. Cached areas take the display name of the listing.

        Returns:
            Names of the areas
        """
        data = self._client.fetch("/areas/")
        if not isinstance(data, list):
            raise InvalidDocumentError(f"Expected a list of areas, got: {data!r}")
        documents = [parse_document(AreaDocument, a) for a in data]

        for doc in documents:
            area = self.store.get_or_create(
                doc.name,
                lambda doc=doc: Area(self._client, doc.name, doc.displayname),
            )
            area._display_name = doc.displayname or doc.name
        logger.info(f"Loaded {len(documents)} areas")
        return [doc.name for doc in documents]

    def get(self, name: str) -> Optional[Area]:
        """
        Get an area from the cache, or from the server.

        Returns:
            The area, or None if it does not exist or cannot be fetched
        """
        return self._client.coordinator.lookup(
            self.store,
            name,
            lambda: Area(self._client, name),
        )

    def get_cached(self, name: str) -> Optional[Area]:
        return self.store.get_cached(name)

    def collection(self) -> List[Area]:
        """Every known area, populated. See `load`."""
        return [
            area for area in (self.get(name) for name in self.store.keys())
            if area is not None
        ]

    def init(self) -> None:
        """Load the areas, then the drafts and own posts of each of them."""
        self.load()
        for area in self.collection():
            area.load_drafts()
            area.load_own_posts()

    def clear(self) -> int:
        return self.store.clear()

    def clean(self) -> int:
        """Remove the areas that have expired."""
        return self.store.remove_expired()
