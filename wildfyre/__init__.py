"""
Python client for the WildFyre API, with an in-memory entity cache.
"""
from .errors import (
    ConnectivityError,
    EntityNotFound,
    HandlerNotRegisteredError,
    InvalidCredentials,
    InvalidDocumentError,
    InvalidDraftStateError,
    NotConnectedError,
    TransferError,
    WildFyreError,
)
from .cache import EntityKind, ExpirationPolicy
from .transport import Method, Transport
from .users import LoggedUser, User
from .posts import Comment, Draft, DraftState, Post
from .areas import Area
from .client import WildFyre

__all__ = [
    # Client
    "WildFyre",
    "Transport",
    "Method",
    # Entities
    "EntityKind",
    "ExpirationPolicy",
    "User",
    "LoggedUser",
    "Area",
    "Post",
    "Draft",
    "DraftState",
    "Comment",
    # Errors
    "WildFyreError",
    "ConnectivityError",
    "TransferError",
    "EntityNotFound",
    "InvalidCredentials",
    "InvalidDocumentError",
    "InvalidDraftStateError",
    "HandlerNotRegisteredError",
    "NotConnectedError",
]
