"""
Unit tests for the cache building blocks: entities, expiration policies and
stores.
"""
import logging
import threading

import pytest

from wildfyre.cache import Entity, EntityKind, EntityStore, ExpirationPolicy, TTL_CONFIG
from wildfyre.cache.core import now


class Probe(Entity):
    """Minimal entity whose update only touches it."""

    kind = EntityKind.USER

    def __init__(self, client, key):
        super().__init__(client)
        self._key = key
        self.updates = 0

    @property
    def key(self):
        return self._key

    def update(self):
        self.updates += 1
        self.touch()


# =============================================================================
# Expiration Policy Tests
# =============================================================================

class TestExpirationPolicy:
    """Tests for per-kind expiration policies."""

    def test_defaults(self):
        """Test that each kind starts with its configured TTL."""
        assert ExpirationPolicy(EntityKind.USER).ttl_seconds == TTL_CONFIG[EntityKind.USER]
        assert ExpirationPolicy(EntityKind.POST).ttl_seconds == 600

    def test_negative_rejected(self):
        policy = ExpirationPolicy(EntityKind.AREA)
        with pytest.raises(ValueError):
            policy.set_expiration_time(-1)
        assert policy.ttl_seconds == TTL_CONFIG[EntityKind.AREA]

    def test_zero_warns(self, caplog):
        """Test that a zero TTL is accepted but logged."""
        with caplog.at_level(logging.WARNING, logger="cache.ttl_policies"):
            policy = ExpirationPolicy(EntityKind.USER).set_expiration_time(0)
        assert policy.ttl_seconds == 0
        assert "caching is disabled" in caplog.text

    def test_chaining(self):
        policy = ExpirationPolicy(EntityKind.USER)
        assert policy.set_expiration_time(5) is policy


# =============================================================================
# Entity Tests
# =============================================================================

class TestEntity:
    """Tests for the freshness bookkeeping of entities."""

    def test_new_entity(self, client):
        """Test that a new entity is touched but still new."""
        before = now()
        entity = Probe(client, 1)
        assert entity.is_new
        assert entity.last_used_at >= before
        assert entity.is_valid()

    def test_touch_clears_new(self, client):
        entity = Probe(client, 1)
        entity.touch()
        assert not entity.is_new
        entity.touch()
        assert not entity.is_new

    def test_validity_uses_policy_at_check_time(self, client):
        """Test that changing the policy affects existing entities immediately."""
        entity = Probe(client, 1)
        entity.touch()
        later = entity.last_used_at + 10

        client.policies[EntityKind.USER].set_expiration_time(60)
        assert entity.is_valid(later)

        client.policies[EntityKind.USER].set_expiration_time(5)
        assert not entity.is_valid(later)

    def test_validity_boundary(self, client):
        entity = Probe(client, 1)
        client.policies[EntityKind.USER].set_expiration_time(10)
        assert entity.is_valid(entity.last_used_at + 9.9)
        assert not entity.is_valid(entity.last_used_at + 10.1)

    def test_update_makes_fresh(self, client):
        entity = Probe(client, 1)
        entity.last_used_at -= 100000
        entity.update()
        assert entity.is_valid()
        assert not entity.is_new


# =============================================================================
# Entity Store Tests
# =============================================================================

class TestEntityStore:
    """Tests for the per-kind entity store."""

    def test_starts_empty(self):
        store = EntityStore(EntityKind.USER)
        assert len(store) == 0
        assert store.get_cached(1) is None
        assert 1 not in store

    def test_get_or_create_creates_once(self, client):
        store = EntityStore(EntityKind.USER)
        created = []

        def factory():
            entity = Probe(client, 1)
            created.append(entity)
            return entity

        first = store.get_or_create(1, factory)
        second = store.get_or_create(1, factory)

        assert first is second
        assert len(created) == 1
        assert store.get_cached(1) is first

    def test_last_put_wins(self, client):
        store = EntityStore(EntityKind.USER)
        a, b = Probe(client, 1), Probe(client, 1)
        store.put(1, a)
        store.put(1, b)
        assert len(store) == 1
        assert store.get_cached(1) is b

    def test_remove_expected(self, client):
        """Test that a stale object cannot evict its replacement."""
        store = EntityStore(EntityKind.USER)
        old, new = Probe(client, 1), Probe(client, 1)
        store.put(1, new)

        assert store.remove(1, expected=old) is None
        assert store.get_cached(1) is new
        assert store.remove(1, expected=new) is new
        assert 1 not in store

    def test_remove_if(self, client):
        store = EntityStore(EntityKind.USER)
        for key in range(6):
            store.put(key, Probe(client, key))

        removed = store.remove_if(lambda e: e.key % 2 == 0)

        assert removed == 3
        assert sorted(store.keys()) == [1, 3, 5]

    def test_remove_expired(self, client):
        """Test that the sweep checks every entity against the same time."""
        client.policies[EntityKind.USER].set_expiration_time(10)
        store = EntityStore(EntityKind.USER)
        fresh, stale = Probe(client, 1), Probe(client, 2)
        stale.last_used_at -= 60
        store.put(1, fresh)
        store.put(2, stale)

        assert store.remove_expired() == 1
        assert store.keys() == [1]

        assert store.remove_expired(fresh.last_used_at + 11) == 1
        assert len(store) == 0

    def test_clear(self, client):
        store = EntityStore(EntityKind.USER)
        store.put(1, Probe(client, 1))
        store.put(2, Probe(client, 2))

        assert store.clear() == 2
        assert len(store) == 0
        assert store.get_or_create(1, lambda: Probe(client, 1)).key == 1

    def test_concurrent_get_or_create(self, client):
        """Test that racing threads end up sharing one stored entity."""
        store = EntityStore(EntityKind.USER)
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(store.get_or_create(7, lambda: Probe(client, 7)))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store) == 1
        assert all(r is store.get_cached(7) for r in results)
