"""Tests for akv.cli — command line interface."""

import argparse
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

from akv.cli import _apply_args, _configure_logging, main
from akv.config import Config


def _args(**kwargs):
    defaults = {"debug": False, "log_file": None, "preload_concurrency": None}
    defaults.update(kwargs)
    return argparse.Namespace(**defaults)


class TestCli:
    def test_version_flag(self, capsys):
        rc = main(["--version"])
        assert rc == 0
        out = capsys.readouterr().out
        assert "akv" in out
        assert "0.1.0" in out

    def test_without_textual(self, capsys, monkeypatch):
        """If textual isn't installed, akv should return 1 with error."""
        monkeypatch.setattr("akv.tui.check_textual", lambda: False)
        with patch("akv.cli._configure_logging"):
            rc = main([])
        assert rc == 1
        assert "textual" in capsys.readouterr().out.lower()

    def test_credential_failure(self, capsys):
        with (
            patch("akv.cli._configure_logging"),
            patch("akv.azure.AzureVaultBackend", side_effect=ValueError("no tenant")),
        ):
            rc = main([])
        assert rc == 1
        assert "no tenant" in capsys.readouterr().out

    def test_runs_app(self):
        app = MagicMock()
        with (
            patch("akv.cli._configure_logging"),
            patch("akv.azure.AzureVaultBackend") as backend_cls,
            patch("akv.tui.app.AkvApp", return_value=app) as app_cls,
        ):
            rc = main(["--preload-concurrency", "2"])
        assert rc == 0
        backend_cls.assert_called_once_with(
            base_url="https://management.azure.com", timeout=30.0
        )
        engine = app_cls.call_args.args[0]
        assert engine.config.cache.preload_concurrency == 2
        app.run.assert_called_once()


class TestApplyArgs:
    def test_no_flags_keeps_config(self):
        cfg = Config()
        assert _apply_args(cfg, _args()) == cfg

    def test_debug(self):
        assert _apply_args(Config(), _args(debug=True)).debug is True

    def test_log_file_implies_debug(self):
        cfg = _apply_args(Config(), _args(log_file=Path("/tmp/x.log")))
        assert cfg.debug is True
        assert cfg.log_file == Path("/tmp/x.log")

    def test_preload_concurrency(self):
        cfg = _apply_args(Config(), _args(preload_concurrency=9))
        assert cfg.cache.preload_concurrency == 9


class TestConfigureLogging:
    def test_debug_writes_file(self, tmp_path):
        log_file = tmp_path / "akv.log"
        with patch("akv.cli.logging.basicConfig") as basic:
            _configure_logging(Config(debug=True, log_file=log_file))
        kwargs = basic.call_args.kwargs
        assert kwargs["filename"] == str(log_file)
        assert kwargs["level"] == logging.DEBUG

    def test_quiet_by_default(self):
        with patch("akv.cli.logging.basicConfig") as basic:
            _configure_logging(Config())
        basic.assert_not_called()
        handlers = logging.getLogger("akv").handlers
        assert any(isinstance(h, logging.NullHandler) for h in handlers)
