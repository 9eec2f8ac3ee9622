"""
AkvApp — main Textual application for the akv TUI.

Textual owns the asyncio loop; this app is only the host of the Engine:
a fixed-rate timer ticks the engine, drains background results and
redraws, and every key press is forwarded to the engine's state machine.
"""

from __future__ import annotations

import logging
from typing import Any

from rich.markup import escape
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.timer import Timer
from textual.widgets import Header

from akv.engine import Engine
from akv.state import Screen
from akv.tui.widgets import (
    KeyHints,
    ListPanel,
    ModalPanel,
    StatusBar,
    WelcomeBanner,
    secrets_title,
    vault_title,
)

logger = logging.getLogger(__name__)


def key_name(event: events.Key) -> str:
    """Normalize a Textual key event: the character if printable, else the key name."""
    if event.is_printable and event.character:
        return event.character
    return event.key


class AkvApp(App):
    """Terminal browser for Azure Key Vault secrets."""

    TITLE = "Azure Key Vault TUI"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", show=True, priority=True),
    ]

    def __init__(self, engine: Engine, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.engine = engine
        self._ticker: Timer | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield WelcomeBanner(id="welcome")
        with Vertical(id="main"):
            yield ModalPanel(id="modal")
            yield ListPanel(
                title=vault_title(self.engine.state.vault_search),
                empty_text="No vaults found yet...",
                id="vaults",
            )
            yield ListPanel(title="Secrets", empty_text="No secrets loaded.", id="secrets")
            yield KeyHints(id="hints")
        yield StatusBar(id="status-bar")

    @property
    def status_bar(self) -> StatusBar:
        return self.query_one("#status-bar", StatusBar)

    def on_mount(self) -> None:
        """Start discovery and the render/drain ticker."""
        self.engine.start()
        self._ticker = self.set_interval(self.engine.config.ui.tick_interval, self._on_tick)
        self.render_state()

    def _on_tick(self) -> None:
        self.engine.tick()
        self.engine.drain()
        self.render_state()

    async def on_key(self, event: events.Key) -> None:
        """Every key goes to the engine's state machine."""
        event.stop()
        event.prevent_default()
        if not self.engine.handle_key(key_name(event)):
            self.exit()
            return
        self.render_state()

    def render_state(self) -> None:
        state = self.engine.state
        welcome = self.query_one("#welcome", WelcomeBanner)
        main = self.query_one("#main", Vertical)
        vaults = self.query_one("#vaults", ListPanel)
        secrets = self.query_one("#secrets", ListPanel)

        on_welcome = state.screen is Screen.WELCOME
        welcome.display = on_welcome
        main.display = not on_welcome
        vaults.display = state.screen is Screen.VAULT_SELECTION
        secrets.display = state.screen is Screen.SECRETS

        if state.screen is Screen.VAULT_SELECTION:
            vaults.show(
                [v.name for v in state.displayed_vaults],
                state.vault_cursor,
                title=escape(vault_title(state.vault_search)),
                empty_text=(
                    "No matching vaults..." if state.vault_search.query else "No vaults found yet..."
                ),
            )
        elif state.screen is Screen.SECRETS:
            secrets.show(
                state.displayed_secrets,
                state.secret_cursor,
                title=escape(secrets_title(state)),
                empty_text="No matching secrets..." if state.secret_search.query else "No secrets.",
            )

        self.query_one("#modal", ModalPanel).set_modal(state.modal)
        self.query_one("#hints", KeyHints).set_screen(state.screen)
        self.status_bar.set_state(state)

    async def on_unmount(self) -> None:
        """Clean up on exit."""
        if self._ticker is not None:
            self._ticker.stop()
        await self.engine.shutdown()
