"""
Entity cache with per-kind expiration and background refresh.
"""
from .core import Entity, EntityKind
from .ttl_policies import TTL_CONFIG, ExpirationPolicy, build_policies
from .store import EntityStore
from .handlers import ErrorHandlers
from .coordinator import RefreshCoordinator

__all__ = [
    # Core types
    "Entity",
    "EntityKind",
    # Expiration
    "TTL_CONFIG",
    "ExpirationPolicy",
    "build_policies",
    # Storage
    "EntityStore",
    # Coordination
    "ErrorHandlers",
    "RefreshCoordinator",
]
