"""
Key routing for akv — the screen/modal state machine.

Keys arrive as plain strings: a single character for printable keys
("a", "/", "Y", " ") and a name for everything else ("enter", "escape",
"tab", "backspace", "up", "down").

Routing order: welcome screen, active modal, active search, global quit,
then the per-screen key table below.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from akv.state import (
    AddField,
    AddSecretModal,
    ConfirmDeleteModal,
    EditSecretModal,
    Screen,
    SearchContext,
)

if TYPE_CHECKING:
    from akv.engine import Engine

QUIT_KEYS = frozenset({"q", "escape"})

# Key tables: key → (handler_name, description)
VAULT_SELECTION_KEYS: dict[str, tuple[str, str]] = {
    "up": ("key_vault_up", "Previous vault"),
    "k": ("key_vault_up", "Previous vault"),
    "down": ("key_vault_down", "Next vault"),
    "j": ("key_vault_down", "Next vault"),
    "/": ("key_vault_search", "Filter vaults"),
    "enter": ("key_select_vault", "Open vault"),
    "v": ("key_rediscover", "Rediscover vaults"),
}

SECRETS_KEYS: dict[str, tuple[str, str]] = {
    "up": ("key_secret_up", "Previous secret"),
    "k": ("key_secret_up", "Previous secret"),
    "down": ("key_secret_down", "Next secret"),
    "j": ("key_secret_down", "Next secret"),
    "/": ("key_secret_search", "Search secrets"),
    "a": ("key_add", "Add secret"),
    "e": ("key_edit", "Edit secret"),
    "d": ("key_delete", "Delete secret"),
    "enter": ("key_copy", "Copy value"),
    "r": ("key_refresh", "Refresh secrets"),
    "v": ("key_back_to_vaults", "Back to vaults"),
}

SCREEN_KEYS: dict[Screen, dict[str, tuple[str, str]]] = {
    Screen.VAULT_SELECTION: VAULT_SELECTION_KEYS,
    Screen.SECRETS: SECRETS_KEYS,
}


def is_char(key: str) -> bool:
    return len(key) == 1


def route_key(engine: Engine, key: str) -> None:
    state = engine.state

    if state.screen is Screen.WELCOME:
        state.screen = Screen.VAULT_SELECTION
        return

    if state.modal is not None:
        handle_modal_key(engine, key)
        return

    search = active_search(engine)
    if search is not None:
        handle_search_key(engine, search, key)
        return

    if key in QUIT_KEYS:
        engine.quit()
        return

    entry = SCREEN_KEYS.get(state.screen, {}).get(key)
    if entry is None:
        return
    handler = globals()[entry[0]]
    handler(engine)


def active_search(engine: Engine) -> SearchContext | None:
    state = engine.state
    if state.screen is Screen.VAULT_SELECTION and state.vault_search.active:
        return state.vault_search
    if state.screen is Screen.SECRETS and state.secret_search.active:
        return state.secret_search
    return None


def _refilter(engine: Engine, search: SearchContext) -> None:
    if search is engine.state.vault_search:
        engine.state.refilter_vaults()
    else:
        engine.state.refilter_secrets()


def handle_search_key(engine: Engine, search: SearchContext, key: str) -> None:
    if key == "escape":
        search.active = False
        search.query = ""
        _refilter(engine, search)
    elif key == "enter":
        search.active = False
    elif key == "backspace":
        search.query = search.query[:-1]
        _refilter(engine, search)
    elif is_char(key):
        search.query += key
        _refilter(engine, search)


# ── Modals ──────────────────────────────────────────────────────────────


def handle_modal_key(engine: Engine, key: str) -> None:
    modal = engine.state.modal
    if isinstance(modal, AddSecretModal):
        _add_modal_key(engine, modal, key)
    elif isinstance(modal, EditSecretModal):
        _edit_modal_key(engine, modal, key)
    elif isinstance(modal, ConfirmDeleteModal):
        _delete_modal_key(engine, modal, key)


def _add_modal_key(engine: Engine, modal: AddSecretModal, key: str) -> None:
    state = engine.state
    if key == "escape":
        state.modal = None
    elif key == "tab":
        modal.focus = AddField.VALUE if modal.focus is AddField.NAME else AddField.NAME
    elif key == "backspace":
        if modal.focus is AddField.NAME:
            modal.name = modal.name[:-1]
        else:
            modal.value = modal.value[:-1]
    elif key == "enter":
        if not modal.name:
            state.message = "Name cannot be empty"
        elif state.current_vault is None:
            state.message = "No vault selected"
        else:
            state.modal = None
            state.loading = True
            state.message = "Creating secret..."
            engine.dispatch_set(state.current_vault, modal.name, modal.value, created=True)
    elif is_char(key):
        if modal.focus is AddField.NAME:
            modal.name += key
        else:
            modal.value += key


def _edit_modal_key(engine: Engine, modal: EditSecretModal, key: str) -> None:
    state = engine.state
    if key == "escape":
        state.modal = None
    elif key == "backspace":
        modal.value = modal.value[:-1]
    elif key == "enter":
        state.modal = None
        state.loading = True
        state.message = "Updating secret..."
        engine.dispatch_set(modal.vault, modal.name, modal.value, created=False)
    elif is_char(key):
        modal.value += key


def _delete_modal_key(engine: Engine, modal: ConfirmDeleteModal, key: str) -> None:
    state = engine.state
    if key in ("y", "Y"):
        state.modal = None
        if state.current_vault is None:
            state.message = "No vault selected"
            return
        state.loading = True
        state.message = "Deleting secret..."
        engine.dispatch_delete(state.current_vault, modal.name)
    elif key in ("n", "escape"):
        state.modal = None


# ── Vault selection screen ──────────────────────────────────────────────


def key_vault_up(engine: Engine) -> None:
    engine.state.move_vault_cursor(-1)


def key_vault_down(engine: Engine) -> None:
    engine.state.move_vault_cursor(1)


def key_vault_search(engine: Engine) -> None:
    engine.state.vault_search.active = True
    engine.state.vault_search.query = ""
    engine.state.refilter_vaults()


def key_select_vault(engine: Engine) -> None:
    vault = engine.state.highlighted_vault
    if vault is not None:
        engine.open_vault(vault)


def key_rediscover(engine: Engine) -> None:
    engine.state.loading = True
    engine.state.message = "Refreshing vaults..."
    engine.dispatch_discovery()


# ── Secrets screen ──────────────────────────────────────────────────────


def key_secret_up(engine: Engine) -> None:
    engine.state.move_secret_cursor(-1)


def key_secret_down(engine: Engine) -> None:
    engine.state.move_secret_cursor(1)


def key_secret_search(engine: Engine) -> None:
    engine.state.secret_search.active = True
    engine.state.secret_search.query = ""
    engine.state.refilter_secrets()


def key_add(engine: Engine) -> None:
    engine.state.modal = AddSecretModal()


def key_edit(engine: Engine) -> None:
    state = engine.state
    name = state.highlighted_secret
    if name is None:
        return
    if state.current_vault is None:
        state.message = "No vault selected"
        return
    state.loading = True
    state.message = "Fetching secret for edit..."
    engine.dispatch_edit_fetch(state.current_vault, name)


def key_delete(engine: Engine) -> None:
    name = engine.state.highlighted_secret
    if name is not None:
        engine.state.modal = ConfirmDeleteModal(name=name)


def key_copy(engine: Engine) -> None:
    state = engine.state
    name = state.highlighted_secret
    if name is None:
        return
    if state.current_vault is None:
        state.message = "No vault selected"
        return
    engine.copy_secret(state.current_vault, name)


def key_refresh(engine: Engine) -> None:
    state = engine.state
    if state.current_vault is None:
        state.message = "No vault selected"
        return
    state.loading = True
    state.message = "Refreshing secrets..."
    engine.dispatch_listing(state.current_vault, incremental=True)


def key_back_to_vaults(engine: Engine) -> None:
    state = engine.state
    state.screen = Screen.VAULT_SELECTION
    state.loading = True
    state.message = "Refreshing vaults..."
    engine.dispatch_discovery()


def help_lines(screen: Screen) -> list[str]:
    """One "key  description" line per distinct action on ``screen``."""
    seen: dict[str, list[str]] = {}
    for key, (_, desc) in SCREEN_KEYS.get(screen, {}).items():
        seen.setdefault(desc, []).append(key)
    return [f"{'/'.join(keys):<12} {desc}" for desc, keys in seen.items()]
