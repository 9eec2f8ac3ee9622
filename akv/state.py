"""
Application state: screens, modals, search contexts and list cursors.

AppState is owned by the event loop and only mutated there (key handling and
event application). Displayed lists are always regenerated from their source
list and the current query, never edited in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from akv.fuzzy import fuzzy_filter
from akv.models import Vault

SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"


class Screen(StrEnum):
    WELCOME = "welcome"
    VAULT_SELECTION = "vault_selection"
    SECRETS = "secrets"


class AddField(StrEnum):
    NAME = "name"
    VALUE = "value"


@dataclass
class AddSecretModal:
    name: str = ""
    value: str = ""
    focus: AddField = AddField.NAME


@dataclass
class EditSecretModal:
    """Edits ``name`` in ``vault``, the vault the value was fetched from."""

    vault: Vault
    name: str
    value: str


@dataclass
class ConfirmDeleteModal:
    name: str


Modal = AddSecretModal | EditSecretModal | ConfirmDeleteModal


@dataclass
class SearchContext:
    active: bool = False
    query: str = ""


def _clamp_cursor(cursor: int | None, delta: int, length: int) -> int | None:
    if length == 0:
        return None
    if cursor is None:
        return 0
    return min(max(cursor + delta, 0), length - 1)


@dataclass
class AppState:
    screen: Screen = Screen.WELCOME
    welcome_shown_at: float = 0.0

    vaults: list[Vault] = field(default_factory=list)
    displayed_vaults: list[Vault] = field(default_factory=list)
    vault_cursor: int | None = None
    vault_search: SearchContext = field(default_factory=SearchContext)
    current_vault: Vault | None = None

    secrets: list[str] = field(default_factory=list)
    displayed_secrets: list[str] = field(default_factory=list)
    secret_cursor: int | None = None
    secret_search: SearchContext = field(default_factory=SearchContext)

    modal: Modal | None = None
    loading: bool = False
    message: str | None = None
    spinner_phase: int = 0

    # ── Filtering ───────────────────────────────────────────────────────

    def refilter_vaults(self) -> None:
        self.displayed_vaults = fuzzy_filter(
            self.vaults, self.vault_search.query, key=lambda v: v.name
        )
        self.vault_cursor = 0 if self.displayed_vaults else None

    def refilter_secrets(self) -> None:
        self.displayed_secrets = fuzzy_filter(self.secrets, self.secret_search.query)
        self.secret_cursor = 0 if self.displayed_secrets else None

    def set_vaults(self, vaults: list[Vault]) -> None:
        self.vaults = list(vaults)
        self.refilter_vaults()

    def set_secrets(self, names: list[str]) -> None:
        self.secrets = list(names)
        self.refilter_secrets()

    # ── Cursors ─────────────────────────────────────────────────────────

    def move_vault_cursor(self, delta: int) -> None:
        self.vault_cursor = _clamp_cursor(self.vault_cursor, delta, len(self.displayed_vaults))

    def move_secret_cursor(self, delta: int) -> None:
        self.secret_cursor = _clamp_cursor(
            self.secret_cursor, delta, len(self.displayed_secrets)
        )

    @property
    def highlighted_vault(self) -> Vault | None:
        if self.vault_cursor is None or self.vault_cursor >= len(self.displayed_vaults):
            return None
        return self.displayed_vaults[self.vault_cursor]

    @property
    def highlighted_secret(self) -> str | None:
        if self.secret_cursor is None or self.secret_cursor >= len(self.displayed_secrets):
            return None
        return self.displayed_secrets[self.secret_cursor]

    # ── Spinner ─────────────────────────────────────────────────────────

    def advance_spinner(self) -> None:
        self.spinner_phase = (self.spinner_phase + 1) % len(SPINNER_FRAMES)

    @property
    def spinner(self) -> str:
        return SPINNER_FRAMES[self.spinner_phase]
