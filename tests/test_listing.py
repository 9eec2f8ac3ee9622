"""Tests for akv.listing — incremental and full secret listings."""

import pytest

from akv.dispatch import EventChannel
from akv.listing import list_secrets_full, list_secrets_incremental
from akv.models import SecretListCachedSilently, SecretListUpdated


@pytest.fixture
def big_backend(make_backend, make_vault):
    names = {f"secret-{i:03d}": str(i) for i in reversed(range(45))}
    return make_backend(secrets={"kv": names}, page_size=7), make_vault("kv")


class TestIncremental:
    @pytest.mark.asyncio
    async def test_flushes_every_batch(self, big_backend):
        backend, vault = big_backend
        channel = EventChannel()
        await list_secrets_incremental(backend, channel, vault, batch=20)
        events = channel.drain()
        assert [len(e.names) for e in events] == [20, 40, 45]
        assert all(isinstance(e, SecretListUpdated) and e.visible for e in events)
        for event in events:
            assert event.names == sorted(event.names)
        assert events[-1].names[0] == "secret-000"

    @pytest.mark.asyncio
    async def test_small_vault_single_event(self, backend, make_vault):
        channel = EventChannel()
        await list_secrets_incremental(backend, channel, make_vault("kv-prod"))
        events = channel.drain()
        assert len(events) == 1
        assert events[0].names == ["api-key", "cert-pass", "db-password"]

    @pytest.mark.asyncio
    async def test_empty_vault_still_emits(self, backend, make_vault):
        channel = EventChannel()
        await list_secrets_incremental(backend, channel, make_vault("kv-shared"))
        assert channel.drain() == [SecretListUpdated("kv-shared", [])]

    @pytest.mark.asyncio
    async def test_error_mid_listing_propagates(self, backend, make_vault):
        backend.failing_vaults.add("kv-prod")
        with pytest.raises(Exception, match="403"):
            await list_secrets_incremental(backend, EventChannel(), make_vault("kv-prod"))


class TestFull:
    @pytest.mark.asyncio
    async def test_single_sorted_event(self, big_backend):
        backend, vault = big_backend
        channel = EventChannel()
        await list_secrets_full(backend, channel, vault)
        events = channel.drain()
        assert len(events) == 1
        assert len(events[0].names) == 45
        assert events[0].names == sorted(events[0].names)
        assert events[0].visible

    @pytest.mark.asyncio
    async def test_silent(self, backend, make_vault):
        channel = EventChannel()
        await list_secrets_full(backend, channel, make_vault("kv-dev"), visible=False)
        (event,) = channel.drain()
        assert isinstance(event, SecretListCachedSilently)
        assert event.visible is False
        assert event.names == ["db-password"]
