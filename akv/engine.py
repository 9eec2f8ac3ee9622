"""
Engine — the event-loop core of akv.

Owns AppState and the cache layer, and is the only thing that mutates them.
The host (the Textual app, or a test) drives it:

    engine.start()              # kick off discovery
    every tick:
        engine.tick()           # welcome timeout, spinner
        engine.drain()          # apply background results in arrival order
    on key press:
        engine.handle_key(key)  # route through the screen/modal state machine

Nothing here awaits network I/O. Every backend call is handed to the
TaskDispatcher and comes back later as an Event on the channel.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine
from typing import Any

from akv.backend import VaultBackend
from akv.cache import CacheLayer
from akv.clipboard import ClipboardSink, PyperclipClipboard
from akv.config import Config, get_config
from akv.discovery import discover_vaults
from akv.dispatch import EventChannel, TaskDispatcher
from akv.keymap import route_key
from akv.listing import list_secrets_full, list_secrets_incremental
from akv.models import (
    EditRequested,
    Event,
    SecretListUpdated,
    SecretValueLoaded,
    SecretWritten,
    StatusMessage,
    TokenRefreshed,
    Vault,
    VaultsDiscovered,
)
from akv.preload import PreloadScheduler
from akv.state import AppState, EditSecretModal, Screen, SearchContext

logger = logging.getLogger(__name__)


class Engine:
    """Single-owner application core: state, caches, event channel and dispatch."""

    def __init__(
        self,
        backend: VaultBackend,
        clipboard: ClipboardSink | None = None,
        config: Config | None = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self.backend = backend
        self.clipboard = clipboard or PyperclipClipboard()
        self.config = config or get_config()
        self.clock = clock
        self.wall_clock = wall_clock

        self.state = AppState()
        self.caches = CacheLayer()
        self.channel = EventChannel()
        self.dispatcher = TaskDispatcher(self.channel)
        self.preloader = PreloadScheduler(
            backend, self.channel, concurrency=self.config.cache.preload_concurrency
        )
        self.running = True

    # ── Loop ────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Show the welcome screen and start discovery in the background."""
        self.state.screen = Screen.WELCOME
        self.state.welcome_shown_at = self.clock()
        self.state.loading = True
        self.state.message = "Discovering vaults..."
        self.dispatch_discovery()

    def tick(self) -> None:
        state = self.state
        if (
            state.screen is Screen.WELCOME
            and self.clock() - state.welcome_shown_at >= self.config.ui.welcome_delay
        ):
            state.screen = Screen.VAULT_SELECTION
        if state.loading:
            state.advance_spinner()

    def drain(self) -> int:
        """Apply every queued event. Returns how many were applied."""
        events = self.channel.drain()
        for event in events:
            self.apply_event(event)
        return len(events)

    def handle_key(self, key: str) -> bool:
        """Route a key press. Returns False once the user has asked to quit."""
        route_key(self, key)
        return self.running

    def quit(self) -> None:
        self.running = False

    async def shutdown(self) -> None:
        await self.dispatcher.shutdown()
        await self.backend.close()

    # ── Event application ───────────────────────────────────────────────

    def apply_event(self, event: Event) -> None:
        if isinstance(event, VaultsDiscovered):
            self._on_vaults_discovered(event)
        elif isinstance(event, SecretListUpdated):
            self._on_secret_list(event)
        elif isinstance(event, SecretValueLoaded):
            self._on_secret_value(event)
        elif isinstance(event, EditRequested):
            self._on_edit_requested(event)
        elif isinstance(event, TokenRefreshed):
            logger.debug("Token cached (ttl=%.0fs)", event.ttl)
            self.caches.token.store(event.fetched_at, event.ttl)
        elif isinstance(event, SecretWritten):
            self.caches.secret_values.evict(event.vault_name, event.name)
            self.state.loading = False
            self.state.message = event.text
        elif isinstance(event, StatusMessage):
            logger.info("Background message: %s", event.text)
            self.state.loading = False
            self.state.message = event.text
        else:
            logger.warning("Ignoring unknown event %r", event)

    def _on_vaults_discovered(self, event: VaultsDiscovered) -> None:
        state = self.state
        logger.debug("VaultsDiscovered: %d vaults", len(event.vaults))
        state.set_vaults(event.vaults)
        state.loading = False
        if not state.vaults:
            state.message = "No vaults found (press 'v' to retry)"
            return
        state.message = (
            f"Discovered {len(state.vaults)} vault(s). Use ↑/↓ and Enter to select."
        )
        self.dispatcher.spawn(
            self.preloader.run(list(state.vaults)),
            failure="Preload failed",
            name="preload",
        )

    def _on_secret_list(self, event: SecretListUpdated) -> None:
        entry = self.caches.secret_lists.put(event.vault_name, event.names, self.clock())
        logger.debug(
            "Secret list for %s (%d items, visible=%s)",
            event.vault_name,
            len(entry.secret_names),
            event.visible,
        )
        current = self.state.current_vault
        if not event.visible or current is None or current.name != event.vault_name:
            return
        self.state.set_secrets(entry.secret_names)
        self.state.loading = False
        self.state.message = (
            f"Loaded {len(entry.secret_names)} secrets (from {event.vault_name})"
        )

    def _on_secret_value(self, event: SecretValueLoaded) -> None:
        self.caches.secret_values.put(event.vault_name, event.name, event.value)
        self.state.loading = False
        self._copy_to_clipboard(event.name, event.value)

    def _on_edit_requested(self, event: EditRequested) -> None:
        state = self.state
        state.loading = False
        if state.screen is not Screen.SECRETS or state.modal is not None:
            logger.debug("Dropping edit for %s: no longer on the secrets screen", event.name)
            return
        current = state.current_vault
        if current is None or current.name != event.vault_name:
            logger.debug(
                "Dropping edit for %s: fetched from %s, current vault changed",
                event.name,
                event.vault_name,
            )
            return
        state.modal = EditSecretModal(vault=current, name=event.name, value=event.value)
        state.message = None

    # ── Navigation helpers used by the key map ──────────────────────────

    def open_vault(self, vault: Vault) -> None:
        """Make ``vault`` current and show its secrets, from cache when possible."""
        state = self.state
        state.current_vault = vault
        state.secret_search = SearchContext()
        state.screen = Screen.SECRETS

        entry = self.caches.secret_lists.get(vault.name)
        if entry is not None and entry.secret_names:
            state.set_secrets(entry.secret_names)
            state.loading = False
            state.message = f"Using cached secrets for '{vault.name}'"
            if self.caches.secret_lists.is_stale(
                vault.name, self.clock(), self.config.cache.stale_after_seconds
            ):
                self.dispatch_listing(vault, incremental=False)
            return

        state.set_secrets([])
        state.loading = True
        state.message = "Loading secrets..."
        self.dispatch_listing(vault, incremental=True)

    def copy_secret(self, vault: Vault, name: str) -> None:
        """Copy a secret value, fetching it first unless it's already cached."""
        cached = self.caches.secret_values.get(vault.name, name)
        if cached is not None:
            self._copy_to_clipboard(name, cached)
            return
        self.state.loading = True
        self.state.message = "Fetching secret value..."
        self._spawn_authenticated(self._fetch_value(vault, name), failure="Failed to get secret")

    # ── Dispatch ────────────────────────────────────────────────────────

    def maybe_refresh_token(self) -> None:
        if not self.caches.token.should_refresh(self.clock()):
            return
        logger.debug("Token near expiry or missing -> refreshing in background")
        self.dispatcher.spawn(
            self._refresh_token(), failure="Failed to refresh token", name="token"
        )

    def _spawn_authenticated(
        self, coro: Coroutine[Any, Any, Event | None], *, failure: str
    ) -> asyncio.Task:
        self.maybe_refresh_token()
        return self.dispatcher.spawn(coro, failure=failure)

    def dispatch_discovery(self) -> None:
        # discovery acquires its own token, so no separate refresh check
        self.dispatcher.spawn(
            self._discover(), failure="Vault discovery failed", name="discovery"
        )

    def dispatch_listing(self, vault: Vault, *, incremental: bool) -> None:
        if incremental:
            coro = list_secrets_incremental(
                self.backend, self.channel, vault, batch=self.config.cache.incremental_batch
            )
        else:
            coro = list_secrets_full(self.backend, self.channel, vault)
        self._spawn_authenticated(coro, failure="Failed to list secrets")

    def dispatch_edit_fetch(self, vault: Vault, name: str) -> None:
        self._spawn_authenticated(
            self._fetch_for_edit(vault, name), failure="Failed to get secret for edit"
        )

    def dispatch_set(self, vault: Vault, name: str, value: str, *, created: bool) -> None:
        if created:
            done, failed = f"Secret '{name}' created/updated", "Failed to set secret"
        else:
            done, failed = f"Secret '{name}' updated", "Failed to update secret"
        self._spawn_authenticated(
            self._write_then_relist(
                vault, name, self.backend.set_secret_value(vault, name, value), done, failed
            ),
            failure="Failed to refresh secrets",
        )

    def dispatch_delete(self, vault: Vault, name: str) -> None:
        self._spawn_authenticated(
            self._write_then_relist(
                vault,
                name,
                self.backend.delete_secret(vault, name),
                f"Deleted '{name}'. (soft-delete)",
                "Failed to delete",
            ),
            failure="Failed to refresh secrets",
        )

    def _copy_to_clipboard(self, name: str, value: str) -> None:
        self.dispatcher.spawn(self._copy(name, value), failure="Clipboard error")

    # ── Background task bodies ──────────────────────────────────────────

    def _token_event(self, expires_on: float) -> TokenRefreshed:
        ttl = max(1.0, expires_on - self.wall_clock())
        return TokenRefreshed(fetched_at=self.clock(), ttl=ttl)

    async def _refresh_token(self) -> TokenRefreshed:
        return self._token_event(await self.backend.acquire_token())

    async def _discover(self) -> VaultsDiscovered:
        expires_on = await self.backend.acquire_token()
        self.channel.send(self._token_event(expires_on))
        vaults = await discover_vaults(self.backend, self.config.discovery.cli_command)
        return VaultsDiscovered(vaults)

    async def _fetch_value(self, vault: Vault, name: str) -> SecretValueLoaded:
        value = await self.backend.get_secret_value(vault, name)
        return SecretValueLoaded(vault.name, name, value)

    async def _fetch_for_edit(self, vault: Vault, name: str) -> EditRequested:
        return EditRequested(vault.name, name, await self.backend.get_secret_value(vault, name))

    async def _write_then_relist(
        self,
        vault: Vault,
        name: str,
        write: Coroutine[Any, Any, None],
        done: str,
        failed: str,
    ) -> None:
        succeeded = False
        try:
            await write
        except Exception as e:
            logger.warning("%s: %s", failed, e)
            self.channel.send(StatusMessage(f"{failed}: {e}"))
        else:
            succeeded = True
            self.channel.send(SecretWritten(vault.name, name, done))
        # A failed write only refreshes the cache so its error stays on screen.
        await list_secrets_full(self.backend, self.channel, vault, visible=succeeded)

    async def _copy(self, name: str, value: str) -> StatusMessage:
        await asyncio.to_thread(self.clipboard.set_contents, value)
        return StatusMessage(f"Secret '{name}' copied to clipboard")
