"""Tests for akv.cache — token refresh policy and in-memory stores."""

import pytest

from akv.cache import (
    CacheLayer,
    SecretListCache,
    SecretValueCache,
    TokenCache,
    refresh_threshold,
)


class TestRefreshThreshold:
    @pytest.mark.parametrize(
        ("ttl", "expected"),
        [(3600, 120), (600, 60), (5, 1), (0, 1), (-10, 1), (10_000, 120), (59.9, 5)],
    )
    def test_clamped_tenth(self, ttl, expected):
        assert refresh_threshold(ttl) == expected


class TestTokenCache:
    def test_empty_needs_refresh(self):
        assert TokenCache().should_refresh(now=0.0)

    def test_fresh_token(self):
        cache = TokenCache()
        cache.store(fetched_at=1000.0, ttl=3600)
        assert not cache.should_refresh(now=1001.0)

    def test_sixty_seconds_left(self):
        cache = TokenCache()
        cache.store(fetched_at=1000.0, ttl=3600)
        assert cache.should_refresh(now=1000.0 + 3600 - 60)

    def test_exactly_at_threshold(self):
        cache = TokenCache()
        cache.store(fetched_at=0.0, ttl=3600)
        assert cache.should_refresh(now=3600 - 120)
        assert not cache.should_refresh(now=3600 - 121)

    def test_expired(self):
        cache = TokenCache()
        cache.store(fetched_at=0.0, ttl=10)
        assert cache.should_refresh(now=100.0)

    def test_expires_at(self):
        cache = TokenCache()
        cache.store(fetched_at=5.0, ttl=10)
        assert cache.entry.expires_at == 15.0


class TestSecretListCache:
    def test_put_sorts_and_stamps(self):
        cache = SecretListCache()
        entry = cache.put("kv", ["b", "a", "c"], now=42.0)
        assert entry.secret_names == ["a", "b", "c"]
        assert entry.refreshed_at == 42.0
        assert cache.get("kv") is entry
        assert "kv" in cache
        assert len(cache) == 1

    def test_put_replaces(self):
        cache = SecretListCache()
        cache.put("kv", ["a"], now=1.0)
        cache.put("kv", ["z"], now=2.0)
        assert cache.get("kv").secret_names == ["z"]
        assert cache.get("kv").refreshed_at == 2.0

    def test_put_does_not_alias_input(self):
        names = ["b", "a"]
        cache = SecretListCache()
        cache.put("kv", names, now=0.0)
        names.append("c")
        assert cache.get("kv").secret_names == ["a", "b"]

    def test_missing(self):
        assert SecretListCache().get("nope") is None

    def test_staleness(self):
        cache = SecretListCache()
        cache.put("kv", ["a"], now=100.0)
        assert not cache.is_stale("kv", now=100.0 + 1800, max_age=1800)
        assert cache.is_stale("kv", now=100.0 + 1801, max_age=1800)
        assert cache.is_stale("other", now=0.0, max_age=1800)


class TestSecretValueCache:
    def test_put_get_evict(self):
        cache = SecretValueCache()
        cache.put("kv", "db", "hunter2")
        assert cache.get("kv", "db") == "hunter2"
        assert cache.get("other", "db") is None
        cache.evict("kv", "db")
        assert cache.get("kv", "db") is None
        assert len(cache) == 0

    def test_evict_missing_is_noop(self):
        SecretValueCache().evict("kv", "nope")


def test_cache_layer_defaults():
    layer = CacheLayer()
    assert layer.token.entry is None
    assert len(layer.secret_lists) == 0
    assert len(layer.secret_values) == 0
