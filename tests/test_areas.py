"""
Tests for areas, the posts read through them, and their comments.
"""
import pytest

from wildfyre import Area, Post
from wildfyre.cache import EntityKind
from wildfyre.errors import InvalidDocumentError
from wildfyre.transport import Method

from conftest import MY_ID, comment_doc, post_doc, user_doc


@pytest.fixture
def fun(connected, transport):
    """The area 'fun', fetched."""
    transport.add(Method.GET, "/areas/fun/rep/", {"reputation": 10, "spread": 4})
    return connected.areas.get("fun")


# =============================================================================
# Area Tests
# =============================================================================

class TestArea:
    """Tests for areas and the logged-in user's standing in them."""

    def test_reputation(self, fun, transport):
        assert fun.name == "fun"
        assert fun.reputation == 10
        assert fun.spread == 4
        assert transport.count(Method.GET, "/areas/fun/rep/") == 1

    def test_unknown_reputation(self, connected, transport):
        transport.add(Method.GET, "/areas/sad/rep/", {})

        area = connected.areas.get("sad")

        assert area.reputation is None
        assert area.spread is None

    def test_missing_area(self, connected):
        assert connected.areas.get("nowhere") is None
        assert connected.areas.get_cached("nowhere") is None

    def test_empty_name(self, connected):
        with pytest.raises(ValueError):
            Area(connected, "")

    def test_load(self, connected, transport):
        """Test that listed areas are cached as placeholders until used."""
        transport.add(Method.GET, "/areas/", [
            {"name": "fun", "displayname": "Fun"},
            {"name": "information", "displayname": "Information"},
        ])
        transport.add(Method.GET, "/areas/fun/rep/", {"reputation": 1, "spread": 2})
        transport.add(Method.GET, "/areas/information/rep/", {"reputation": 3, "spread": 4})

        names = connected.areas.load()

        assert names == ["fun", "information"]
        assert connected.areas.get_cached("fun").is_new
        assert transport.count(Method.GET, "/areas/fun/rep/") == 0

        areas = connected.areas.collection()

        assert sorted(a.name for a in areas) == ["fun", "information"]
        assert all(not a.is_new for a in areas)
        assert connected.areas.get("fun").display_name == "Fun"

    def test_load_renames_cached_area(self, connected, transport):
        """Test that reloading the listing updates the display name of a cached area."""
        transport.add(
            Method.GET, "/areas/",
            [{"name": "fun", "displayname": "Fun"}],
            [{"name": "fun", "displayname": "Fun & Games"}],
        )
        transport.add(Method.GET, "/areas/fun/rep/", {"reputation": 1, "spread": 2})

        connected.areas.load()
        area = connected.areas.get("fun")
        connected.areas.load()

        assert connected.areas.get("fun") is area
        assert area.display_name == "Fun & Games"

    def test_load_not_a_list(self, connected, transport):
        transport.add(Method.GET, "/areas/", {"detail": "odd"})
        with pytest.raises(InvalidDocumentError):
            connected.areas.load()

    def test_policy_accessor(self, connected):
        assert connected.areas.policy is connected.policies[EntityKind.AREA]
        assert connected.users.policy is connected.policies[EntityKind.USER]


# =============================================================================
# Post Tests
# =============================================================================

class TestPost:
    """Tests for posts read through their area."""

    def test_post(self, fun, transport):
        transport.add(Method.GET, "/areas/fun/5/", post_doc(5, author_id=2, text="Hello", comments=[
            comment_doc(1, author_id=3, text="First"),
            comment_doc(2, author_id=2, text="Second"),
        ]))

        post = fun.post(5)

        assert post.id == 5
        assert post.area_name == "fun"
        assert post.text == "Hello"
        assert post.author_id == 2
        assert post.created.year == 2019
        assert post.created_local_time == post.created
        assert [c.text for c in post.comments] == ["First", "Second"]
        assert post.key == ("fun", 5)
        assert fun.cached_post(5) is post
        assert fun.cached_posts() == [post]

    def test_author_resolved_lazily(self, fun, transport):
        """Test that the author is looked up only when asked for."""
        transport.add(Method.GET, "/areas/fun/5/", post_doc(5, author_id=2))
        transport.add(Method.GET, "/users/2/", user_doc(2, name="alice"))

        post = fun.post(5)
        assert transport.count(Method.GET, "/users/2/") == 0

        assert post.author().name == "alice"
        assert not post.is_author_deleted()

    def test_comment_relations(self, fun, transport):
        transport.add(Method.GET, "/areas/fun/5/", post_doc(5, comments=[comment_doc(1, author_id=3)]))
        transport.add(Method.GET, "/users/3/", user_doc(3, name="carol"))

        comment = fun.post(5).comments[0]

        assert comment.author().name == "carol"
        assert comment.area() is fun
        assert comment.post() is fun.post(5)

    def test_comments_replaced_on_update(self, fun, transport):
        transport.add(
            Method.GET, "/areas/fun/5/",
            post_doc(5, comments=[comment_doc(1), comment_doc(2)]),
            post_doc(5, comments=[comment_doc(3, text="Only one")]),
        )
        post = fun.post(5)
        first = post.comments

        post.update()

        assert [c.id for c in post.comments] == [3]
        assert [c.id for c in first] == [1, 2]

    def test_anonymous_post(self, fun, transport):
        transport.add(Method.GET, "/areas/fun/5/", post_doc(5, author_id=None, anonym=True))

        post = fun.post(5)

        assert post.is_anonymous
        assert post.author() is None
        assert not post.is_author_deleted()

    def test_deleted_author(self, fun, transport):
        transport.add(Method.GET, "/areas/fun/5/", post_doc(5, author_id=None))

        post = fun.post(5)

        assert not post.is_anonymous
        assert post.is_author_deleted()

    def test_missing_post(self, fun, connected):
        assert fun.post(404) is None
        assert fun.cached_post(404) is None

    def test_negative_id(self, connected):
        with pytest.raises(ValueError):
            Post(connected, "fun", -1)

    def test_same_id_other_area(self, connected, fun, transport):
        transport.add(Method.GET, "/areas/sad/rep/", {})
        transport.add(Method.GET, "/areas/fun/5/", post_doc(5, text="fun post"))
        transport.add(Method.GET, "/areas/sad/5/", post_doc(5, text="sad post"))

        assert fun.post(5).text == "fun post"
        assert connected.areas.get("sad").post(5).text == "sad post"
        assert len(connected.stores[EntityKind.POST]) == 2


# =============================================================================
# Own Posts Tests
# =============================================================================

class TestOwnPosts:
    """Tests for listing the logged-in user's posts."""

    def test_own_posts(self, fun, transport):
        transport.add(Method.GET, "/areas/fun/own/", {"count": 2, "results": [{"id": 5}, {"id": 6}]})
        transport.add(Method.GET, "/areas/fun/5/", post_doc(5, author_id=MY_ID))
        transport.add(Method.GET, "/areas/fun/6/", post_doc(6, author_id=MY_ID))

        assert fun.own_post_ids == []
        fun.load_own_posts()

        assert fun.own_post_ids == [5, 6]
        assert [p.id for p in fun.own_posts()] == [5, 6]

    def test_logged_user_posts(self, connected, fun, transport):
        """Test that the logged-in user's posts are gathered from every area."""
        transport.add(Method.GET, "/areas/sad/rep/", {})
        transport.add(Method.GET, "/areas/fun/own/", {"results": [{"id": 5}]})
        transport.add(Method.GET, "/areas/sad/own/", {"results": [{"id": 9}]})
        transport.add(Method.GET, "/areas/fun/5/", post_doc(5, author_id=MY_ID))
        transport.add(Method.GET, "/areas/sad/9/", post_doc(9, author_id=MY_ID))

        sad = connected.areas.get("sad")
        fun.load_own_posts()
        sad.load_own_posts()

        posts = connected.me().posts()

        assert sorted(p.key for p in posts) == [("fun", 5), ("sad", 9)]

    def test_init(self, connected, transport):
        transport.add(Method.GET, "/areas/", [{"name": "fun"}])
        transport.add(Method.GET, "/areas/fun/rep/", {"reputation": 1})
        transport.add(Method.GET, "/areas/fun/drafts/", {"results": [post_doc(7, author_id=MY_ID)]})
        transport.add(Method.GET, "/areas/fun/own/", {"results": [{"id": 5}]})

        connected.areas.init()

        fun = connected.areas.get("fun")
        assert fun.own_post_ids == [5]
        assert [d.id for d in fun.drafts()] == [7]
