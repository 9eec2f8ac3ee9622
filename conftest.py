"""
Root-level shared test fixtures.

Inherited by tests/ and akv/tui/tests/. Everything here is in-memory: an
Azure-less vault backend, a recording clipboard and a hand-cranked clock.
"""

from __future__ import annotations

import asyncio
import os
import time
from collections.abc import Sequence
from dataclasses import replace

import pytest

from akv.backend import MANAGEMENT_SCOPE, ResponseError
from akv.config import Config, reset_config
from akv.engine import Engine
from akv.models import Page, Vault


def vault(name: str) -> Vault:
    return Vault(name=name, endpoint=f"https://{name}.vault.azure.net/")


class FakeBackend:
    """In-memory VaultBackend.

    ``subscriptions`` maps subscription id → vaults; ``secrets`` maps vault
    name → {secret name: value}. Listings are split into ``page_size`` pages.
    Names in ``failing_subscriptions`` / ``failing_vaults`` raise on listing.
    """

    def __init__(
        self,
        subscriptions: dict[str, list[Vault]] | None = None,
        secrets: dict[str, dict[str, str]] | None = None,
        page_size: int = 2,
        expires_in: float = 3600.0,
    ) -> None:
        self.subscriptions = subscriptions or {}
        self.secrets = secrets or {}
        self.page_size = page_size
        self.expires_in = expires_in
        self.failing_subscriptions: set[str] = set()
        self.failing_vaults: set[str] = set()
        self.fail_writes = False
        self.list_delay = 0.0
        self.token_calls = 0
        self.list_calls: list[str] = []
        self.get_calls: list[tuple[str, str]] = []
        self.closed = False

    def _page(self, items: list, cursor: str | None) -> Page:
        start = int(cursor) if cursor else 0
        end = start + self.page_size
        return Page(value=items[start:end], next_cursor=str(end) if end < len(items) else None)

    async def acquire_token(self, scopes: Sequence[str] = (MANAGEMENT_SCOPE,)) -> float:
        self.token_calls += 1
        return time.time() + self.expires_in

    async def list_subscriptions_page(self, cursor: str | None = None) -> Page[str]:
        return self._page(list(self.subscriptions), cursor)

    async def list_vaults_page(self, subscription_id: str, cursor: str | None = None) -> Page[Vault]:
        if subscription_id in self.failing_subscriptions:
            raise ResponseError(f"HTTP 403 for {subscription_id}")
        return self._page(self.subscriptions[subscription_id], cursor)

    async def list_secret_names_page(self, vault: Vault, cursor: str | None = None) -> Page[str]:
        self.list_calls.append(vault.name)
        if self.list_delay:
            await asyncio.sleep(self.list_delay)
        if vault.name in self.failing_vaults:
            raise ResponseError(f"HTTP 403 for {vault.name}")
        return self._page(list(self.secrets.get(vault.name, {})), cursor)

    async def get_secret_value(self, vault: Vault, name: str) -> str:
        self.get_calls.append((vault.name, name))
        try:
            return self.secrets[vault.name][name]
        except KeyError:
            raise ResponseError(f"SecretNotFound: {name}") from None

    async def set_secret_value(self, vault: Vault, name: str, value: str) -> None:
        if self.fail_writes:
            raise ResponseError("Forbidden")
        self.secrets.setdefault(vault.name, {})[name] = value

    async def delete_secret(self, vault: Vault, name: str) -> None:
        if self.fail_writes:
            raise ResponseError("Forbidden")
        self.secrets.get(vault.name, {}).pop(name, None)

    async def close(self) -> None:
        self.closed = True


class RecordingClipboard:
    def __init__(self) -> None:
        self.contents: list[str] = []

    def set_contents(self, text: str) -> None:
        self.contents.append(text)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Keep AKV_* variables from the developer's shell out of the tests."""
    for key in list(os.environ):
        if key.startswith("AKV_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def backend():
    return FakeBackend(
        subscriptions={
            "sub-1": [vault("kv-prod"), vault("kv-dev")],
            "sub-2": [vault("kv-shared")],
        },
        secrets={
            "kv-prod": {"db-password": "hunter2", "api-key": "k-123", "cert-pass": "c"},
            "kv-dev": {"db-password": "dev"},
            "kv-shared": {},
        },
    )


@pytest.fixture
def clipboard():
    return RecordingClipboard()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_engine(backend, clipboard, clock):
    """Factory: an Engine over the fake backend with the CLI fallback disabled."""

    def _make(**overrides) -> Engine:
        config = overrides.pop("config", None) or Config()
        config = replace(config, discovery=replace(config.discovery, cli_command=()))
        return Engine(
            overrides.pop("backend", backend),
            clipboard=overrides.pop("clipboard", clipboard),
            config=config,
            clock=overrides.pop("clock", clock),
        )

    return _make


async def settle(engine: Engine) -> None:
    """Run every dispatched task to completion, then apply the results."""
    for _ in range(10):
        await engine.dispatcher.join()
        if not engine.drain() and not engine.dispatcher.in_flight:
            return


@pytest.fixture
def make_vault():
    return vault


@pytest.fixture
def make_backend():
    return FakeBackend


@pytest.fixture(name="settle")
def settle_fixture():
    return settle
