"""
Custom Textual widgets for the akv TUI.

WelcomeBanner — startup splash shown while the first discovery runs.
ListPanel — scrolling window over a list with one highlighted row.
StatusBar — bottom line with spinner, current vault and the last message.
ModalPanel — overlay for the add / edit / confirm-delete modals.

Every widget renders from AppState through a pure ``_format()`` so the
markup can be checked without mounting an app.
"""

from __future__ import annotations

from rich.markup import escape
from textual.content import Content
from textual.widgets import Static

from akv.keymap import help_lines
from akv.state import (
    AddField,
    AddSecretModal,
    AppState,
    ConfirmDeleteModal,
    EditSecretModal,
    Modal,
    Screen,
    SearchContext,
)

DEFAULT_WINDOW = 20


class WelcomeBanner(Static):
    """Startup banner with a key hint."""

    DEFAULT_CSS = """
    WelcomeBanner {
        margin: 1 2;
        padding: 1 2;
        border: solid $accent;
        height: auto;
        content-align: center middle;
    }
    """

    TEXT = (
        "[bold]Azure Key Vault TUI[/bold]\n\n"
        "Discovering vaults across your subscriptions...\n"
        "Press any key to continue."
    )

    def __init__(
        self,
        *,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        super().__init__(Content.from_markup(self.TEXT), name=name, id=id, classes=classes)


def window(length: int, cursor: int | None, height: int) -> range:
    """Indices of the rows to draw so that ``cursor`` stays visible."""
    height = max(height, 1)
    if length <= height:
        return range(length)
    top = 0 if cursor is None else min(max(cursor - height // 2, 0), length - height)
    return range(top, top + height)


class ListPanel(Static):
    """A titled list with a highlighted row. Fed with plain strings."""

    DEFAULT_CSS = """
    ListPanel {
        border: round $primary;
        height: 1fr;
        padding: 0 1;
    }
    """

    def __init__(
        self,
        title: str = "",
        empty_text: str = "Nothing here yet...",
        *,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        self._items: list[str] = []
        self._cursor: int | None = None
        self._title = title
        self._empty_text = empty_text
        super().__init__(Content.from_markup(self._format()), name=name, id=id, classes=classes)
        self.border_title = title

    def _visible_rows(self) -> int:
        height = self.size.height if self.is_mounted else 0
        return height or DEFAULT_WINDOW

    def _format(self) -> str:
        if not self._items:
            return f"[dim]{escape(self._empty_text)}[/dim]"
        lines = []
        for i in window(len(self._items), self._cursor, self._visible_rows()):
            text = escape(self._items[i])
            if i == self._cursor:
                lines.append(f"[reverse]> {text}[/reverse]")
            else:
                lines.append(f"  {text}")
        return "\n".join(lines)

    def show(
        self,
        items: list[str],
        cursor: int | None,
        title: str | None = None,
        empty_text: str | None = None,
    ) -> None:
        self._items = items
        self._cursor = cursor
        if title is not None:
            self._title = title
            self.border_title = title
        if empty_text is not None:
            self._empty_text = empty_text
        self.update(Content.from_markup(self._format()))

    @property
    def items(self) -> list[str]:
        return self._items

    @property
    def cursor(self) -> int | None:
        return self._cursor


def vault_title(search: SearchContext) -> str:
    if search.active:
        return f"Select Vault (Search: {search.query}_)"
    if search.query:
        return f"Select Vault (Filter: {search.query})"
    return "Select an Azure Key Vault (Press '/' to filter)"


def secrets_title(state: AppState) -> str:
    search = state.secret_search
    vault = f" (Vault: {state.current_vault.name})" if state.current_vault else ""
    if search.active:
        return f"Search: {search.query}_"
    if search.query:
        return f"Secrets{vault} (Filter: {search.query})"
    return f"Secrets{vault}"


class StatusBar(Static):
    """Bottom status bar: spinner while loading, current vault and message."""

    DEFAULT_CSS = """
    StatusBar {
        dock: bottom;
        height: 1;
        background: $surface;
        padding: 0 1;
    }
    """

    def __init__(
        self,
        *,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        self._loading = False
        self._spinner = ""
        self._vault: str | None = None
        self._message: str | None = None
        super().__init__(Content.from_markup(self._format()), name=name, id=id, classes=classes)

    def _format(self) -> str:
        parts = []
        if self._loading:
            parts.append(f"[yellow]{self._spinner}[/yellow] working")
        if self._vault:
            parts.append(f"vault: [cyan]{escape(self._vault)}[/cyan]")
        if self._message:
            parts.append(escape(self._message))
        return " | ".join(parts) if parts else "[dim]ready[/dim]"

    def set_state(self, state: AppState) -> None:
        self._loading = state.loading
        self._spinner = state.spinner
        self._vault = state.current_vault.name if state.current_vault else None
        self._message = state.message
        self.update(Content.from_markup(self._format()))


class ModalPanel(Static):
    """Overlay for the active modal. Hidden when there is none."""

    DEFAULT_CSS = """
    ModalPanel {
        width: 100%;
        height: auto;
        padding: 1 2;
        border: double $warning;
        background: $panel;
        display: none;
    }
    """

    def __init__(
        self,
        *,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        self._modal: Modal | None = None
        super().__init__(Content.from_markup(self._format()), name=name, id=id, classes=classes)

    def _format(self) -> str:
        modal = self._modal
        if isinstance(modal, AddSecretModal):
            name_marker = ">" if modal.focus is AddField.NAME else " "
            value_marker = ">" if modal.focus is AddField.VALUE else " "
            return (
                "[bold]Add Secret[/bold]\n\n"
                f"{name_marker} Name:  {escape(modal.name)}\n"
                f"{value_marker} Value: {escape(modal.value)}\n\n"
                "[dim]Tab: Switch field | Enter: Submit | Esc: Cancel[/dim]"
            )
        if isinstance(modal, EditSecretModal):
            return (
                "[bold]Edit Secret[/bold]\n\n"
                f"  Vault: {escape(modal.vault.name)}\n"
                f"  Name (read-only): {escape(modal.name)}\n"
                f"> Value: {escape(modal.value)}\n\n"
                "[dim]Enter: Save | Esc: Cancel[/dim]"
            )
        if isinstance(modal, ConfirmDeleteModal):
            return (
                "[bold red]Confirm Delete[/bold red]\n\n"
                f"Are you sure you want to delete\n'{escape(modal.name)}'?\n\n"
                "(y) Yes / (n) No"
            )
        return ""

    def set_modal(self, modal: Modal | None) -> None:
        self._modal = modal
        self.display = modal is not None
        self.update(Content.from_markup(self._format()))


class KeyHints(Static):
    """One-line key reference for the current screen."""

    DEFAULT_CSS = """
    KeyHints {
        height: auto;
        color: $text-muted;
        padding: 0 1;
    }
    """

    def _format(self, screen: Screen) -> str:
        hints = ["q: quit"]
        for line in help_lines(screen):
            keys, _, desc = line.partition(" ")
            hints.append(f"{keys}: {desc.strip().lower()}")
        return escape("  ".join(hints))

    def set_screen(self, screen: Screen) -> None:
        self.update(Content.from_markup(self._format(screen)))
