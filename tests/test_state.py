"""Tests for akv.state and akv.keymap help text."""

from akv.keymap import SECRETS_KEYS, help_lines
from akv.models import Vault
from akv.state import SPINNER_FRAMES, AppState, Screen


def _vaults(*names):
    return [Vault(n, f"https://{n}/") for n in names]


class TestAppState:
    def test_defaults(self):
        state = AppState()
        assert state.screen is Screen.WELCOME
        assert state.current_vault is None
        assert state.modal is None
        assert state.vault_cursor is None

    def test_set_vaults_resets_cursor(self):
        state = AppState()
        state.set_vaults(_vaults("a", "b"))
        state.move_vault_cursor(1)
        state.set_vaults(_vaults("c", "d", "e"))
        assert state.vault_cursor == 0
        assert state.highlighted_vault.name == "c"

    def test_empty_list_has_no_cursor(self):
        state = AppState()
        state.set_secrets([])
        state.move_secret_cursor(1)
        assert state.secret_cursor is None
        assert state.highlighted_secret is None

    def test_filter_is_regenerated_from_source(self):
        state = AppState()
        state.set_secrets(["db-one", "api", "db-two"])
        state.secret_search.query = "db"
        state.refilter_secrets()
        assert state.displayed_secrets == ["db-one", "db-two"]
        state.secret_search.query = ""
        state.refilter_secrets()
        assert state.displayed_secrets == ["db-one", "api", "db-two"]
        assert state.secrets == ["db-one", "api", "db-two"]

    def test_spinner_wraps(self):
        state = AppState()
        for _ in range(len(SPINNER_FRAMES)):
            state.advance_spinner()
        assert state.spinner_phase == 0
        assert state.spinner == SPINNER_FRAMES[0]


class TestHelpLines:
    def test_one_line_per_action(self):
        lines = help_lines(Screen.SECRETS)
        descriptions = {desc for _, desc in SECRETS_KEYS.values()}
        assert len(lines) == len(descriptions)
        assert any(line.startswith("up/k") for line in lines)

    def test_welcome_has_none(self):
        assert help_lines(Screen.WELCOME) == []
