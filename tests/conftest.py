"""
Shared fixtures: a scripted in-memory transport and ready-to-use clients.
"""
import copy
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import pytest

from config.settings import Settings
from wildfyre import WildFyre
from wildfyre.errors import TransferError
from wildfyre.transport import Method


MY_ID = 1


# =============================================================================
# Fake transport
# =============================================================================

@dataclass
class Call:
    """One request received by the fake transport."""
    method: Method
    path: str
    token: Optional[str]
    body: Any


class FakeTransport:
    """
    Transport answering from a table of scripted replies.

    Each route holds a queue of replies; the last one is repeated. A reply
    can be a document, an exception to raise, or a callable receiving the
    request body. Unknown routes answer like the server does for a missing
    object.
    """

    def __init__(self):
        self._routes: Dict[Tuple[Method, str], List[Any]] = {}
        self._lock = threading.Lock()
        self.calls: List[Call] = []

    def add(self, method: Method, path: str, *replies: Any) -> "FakeTransport":
        with self._lock:
            self._routes.setdefault((method, path), []).extend(replies)
        return self

    def replace(self, method: Method, path: str, *replies: Any) -> "FakeTransport":
        with self._lock:
            self._routes[(method, path)] = list(replies)
        return self

    def request(self, method, path, token=None, body=None):
        with self._lock:
            self.calls.append(Call(method, path, token, copy.deepcopy(body)))
            replies = self._routes.get((method, path))
            if not replies:
                reply = TransferError("Not found", document={"detail": "Not found."}, status_code=404)
            elif len(replies) > 1:
                reply = replies.pop(0)
            else:
                reply = replies[0]

        if callable(reply) and not isinstance(reply, BaseException):
            reply = reply(body)
        if isinstance(reply, BaseException):
            raise reply
        return copy.deepcopy(reply)

    def count(self, method: Method, path: str) -> int:
        with self._lock:
            return sum(1 for c in self.calls if c.method == method and c.path == path)

    def calls_to(self, method: Method, path: str) -> List[Call]:
        with self._lock:
            return [c for c in self.calls if c.method == method and c.path == path]

    def close(self) -> None:
        pass


# =============================================================================
# Documents
# =============================================================================

def user_doc(user_id: int, name: str = None, bio: str = "", avatar: str = None, banned: bool = False) -> dict:
    return {
        "user": user_id,
        "name": name if name is not None else f"user{user_id}",
        "avatar": avatar,
        "bio": bio,
        "banned": banned,
    }


def comment_doc(comment_id: int, author_id: int = 2, text: str = "A comment") -> dict:
    return {
        "id": comment_id,
        "author": {"user": author_id, "name": f"user{author_id}", "avatar": None},
        "created": "2019-03-01T10:00:00Z",
        "text": text,
        "image": None,
    }


def post_doc(
    post_id: int,
    author_id: Optional[int] = 2,
    text: str = "A post",
    anonym: bool = False,
    comments: Optional[list] = None,
) -> dict:
    return {
        "id": post_id,
        "author": {"user": author_id, "name": f"user{author_id}", "avatar": None} if author_id else None,
        "anonym": anonym,
        "subscribed": True,
        "created": "2019-03-01T09:00:00Z",
        "active": True,
        "text": text,
        "image": None,
        "additional_images": [],
        "comments": comments or [],
    }


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(transport):
    """A client that is not connected, with no handlers."""
    wf = WildFyre(transport=transport, settings=Settings(refresh_workers=4))
    yield wf
    wf.coordinator.wait_for_pending(timeout=5)
    wf.shutdown(wait=True)


@pytest.fixture
def reported():
    """Lists collecting what the background error handlers receive."""
    return {"connectivity": [], "not_found": []}


@pytest.fixture
def handled_client(client, reported):
    """A client with both error handlers registered."""
    client.set_connectivity_error_handler(reported["connectivity"].append)
    client.set_entity_not_found_handler(reported["not_found"].append)
    return client


@pytest.fixture
def connected(handled_client, transport):
    """A client logged in as user MY_ID with the token 'secret'."""
    transport.add(Method.GET, "/users/", {"user": MY_ID})
    transport.add(Method.GET, f"/users/{MY_ID}/", user_doc(MY_ID, name="me"))
    handled_client.connect_with_token("secret")
    return handled_client
