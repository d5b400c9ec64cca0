"""
Expiration configuration for each entity kind.
"""
import logging
from typing import Dict, Optional

from .core import EntityKind

logger = logging.getLogger("cache.ttl_policies")


# Default TTL by kind (in seconds)
TTL_CONFIG: Dict[EntityKind, float] = {
    EntityKind.USER: 1800,      # 30 minutes
    EntityKind.AREA: 3600,      # 1 hour
    EntityKind.POST: 600,       # 10 minutes
    EntityKind.DRAFT: 3600,     # 1 hour
}


class ExpirationPolicy:
    """
    How long entities of one kind stay fresh after their last use.

    Entities read the policy every time their validity is checked, so
    changing it affects every cached entity of the kind immediately.
    """

    def __init__(self, kind: EntityKind, ttl_seconds: Optional[float] = None):
        self.kind = kind
        self._ttl_seconds = TTL_CONFIG[kind]
        if ttl_seconds is not None:
            self.set_expiration_time(ttl_seconds)

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def set_expiration_time(self, seconds: float) -> "ExpirationPolicy":
        """
        Set for how long entities are kept fresh.

        Args:
            seconds: Time to live; 0 is accepted but disables caching

        Returns:
            This policy, to allow chaining

        Raises:
            ValueError: If `seconds` is negative
        """
        if seconds < 0:
            raise ValueError(f"The expiration time should not be negative: {seconds}")
        if seconds == 0:
            logger.warning(f"Expiration time of {self.kind.value} set to 0, caching is disabled")

        self._ttl_seconds = seconds
        return self

    def __repr__(self) -> str:
        return f"ExpirationPolicy(kind={self.kind.value}, ttl_seconds={self._ttl_seconds})"


def build_policies(overrides: Optional[Dict[EntityKind, float]] = None) -> Dict[EntityKind, ExpirationPolicy]:
    """
    Create one policy per entity kind.

    Args:
        overrides: TTL in seconds for some kinds; others use TTL_CONFIG

    Returns:
        Dict of kind -> ExpirationPolicy
    """
    overrides = overrides or {}
    return {
        kind: ExpirationPolicy(kind, overrides.get(kind))
        for kind in EntityKind
    }
