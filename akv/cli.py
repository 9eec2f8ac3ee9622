"""
akv CLI — entry point for the Azure Key Vault TUI.

Usage:
    akv                          # Launch the TUI
    akv --debug                  # Also write DEBUG logs to akv_tui.log
    akv --log-file /tmp/akv.log  # Log somewhere else (implies --debug)
    akv --version                # Show version
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from akv.config import Config, get_config

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="akv",
        description="akv — browse, copy and edit Azure Key Vault secrets from the terminal.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--debug", action="store_true", help="Write DEBUG logs to the log file")
    parser.add_argument("--log-file", type=Path, help="Log file path (implies --debug)")
    parser.add_argument(
        "--preload-concurrency",
        type=int,
        help="Max vaults whose secret lists are preloaded at once",
    )

    args = parser.parse_args(argv)

    if args.version:
        from akv import __version__

        print(f"akv {__version__}")
        return 0

    config = _apply_args(get_config(), args)
    _configure_logging(config)
    return _cmd_run(config)


def _apply_args(config: Config, args: argparse.Namespace) -> Config:
    """Command-line flags override the environment."""
    if args.log_file is not None:
        config = dataclasses.replace(config, debug=True, log_file=args.log_file)
    elif args.debug:
        config = dataclasses.replace(config, debug=True)
    if args.preload_concurrency is not None:
        cache = dataclasses.replace(config.cache, preload_concurrency=args.preload_concurrency)
        config = dataclasses.replace(config, cache=cache)
    return config


def _configure_logging(config: Config) -> None:
    # stderr belongs to the terminal UI, so logs only ever go to a file
    if config.debug:
        logging.basicConfig(
            filename=str(config.log_file),
            level=logging.DEBUG,
            format=LOG_FORMAT,
        )
        logger.debug("Logging to %s", config.log_file)
    else:
        logging.getLogger("akv").addHandler(logging.NullHandler())


def _cmd_run(config: Config) -> int:
    from akv.tui import check_textual

    if not check_textual():
        print("Error: textual not installed. Install with: pip install akv-tui")
        return 1

    from akv.azure import AzureVaultBackend

    try:
        backend = AzureVaultBackend(
            base_url=config.discovery.arm_base_url,
            timeout=config.discovery.http_timeout,
        )
    except Exception as e:
        logger.exception("Failed to initialise Azure credentials")
        print(f"Error: could not initialise Azure credentials: {e}")
        return 1

    from akv.engine import Engine
    from akv.tui.app import AkvApp

    engine = Engine(backend, config=config)
    app = AkvApp(engine)
    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
