"""
Centralized configuration for akv.

All configuration is loaded from environment variables with sensible defaults.

Usage:
    from akv.config import get_config
    cfg = get_config()
    print(cfg.ui.tick_ms)              # 50
    print(cfg.discovery.cli_command)   # ('az', 'keyvault', 'list', '-o', 'json')
"""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path

from akv.azure import ARM_BASE_URL
from akv.discovery import DEFAULT_CLI_COMMAND
from akv.listing import INCREMENTAL_BATCH
from akv.preload import DEFAULT_CONCURRENCY


@dataclass(frozen=True)
class UiConfig:
    """Event loop cadence."""

    tick_ms: int = 50
    welcome_ms: int = 1500

    @property
    def tick_interval(self) -> float:
        return self.tick_ms / 1000

    @property
    def welcome_delay(self) -> float:
        return self.welcome_ms / 1000


@dataclass(frozen=True)
class CacheConfig:
    """Secret-list cache behaviour."""

    stale_after_seconds: int = 30 * 60
    incremental_batch: int = INCREMENTAL_BATCH
    preload_concurrency: int = DEFAULT_CONCURRENCY


@dataclass(frozen=True)
class DiscoveryConfig:
    """Where vaults are discovered from."""

    arm_base_url: str = ARM_BASE_URL
    http_timeout: float = 30.0
    cli_command: tuple[str, ...] = DEFAULT_CLI_COMMAND


@dataclass(frozen=True)
class Config:
    """Top-level akv configuration."""

    ui: UiConfig = field(default_factory=UiConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)

    debug: bool = False
    log_file: Path = field(default_factory=lambda: Path("akv_tui.log"))


# Singleton
_config: Config | None = None


def get_config() -> Config:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = _load_from_env()
    return _config


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("true", "1", "yes")


def _load_from_env() -> Config:
    """Load configuration from environment variables."""
    ui = UiConfig(
        tick_ms=int(os.environ.get("AKV_TICK_MS", "50")),
        welcome_ms=int(os.environ.get("AKV_WELCOME_MS", "1500")),
    )

    cache = CacheConfig(
        stale_after_seconds=int(os.environ.get("AKV_STALE_AFTER_SECONDS", str(30 * 60))),
        incremental_batch=int(os.environ.get("AKV_INCREMENTAL_BATCH", str(INCREMENTAL_BATCH))),
        preload_concurrency=int(
            os.environ.get("AKV_PRELOAD_CONCURRENCY", str(DEFAULT_CONCURRENCY))
        ),
    )

    cli_command = os.environ.get("AKV_CLI_COMMAND")
    discovery = DiscoveryConfig(
        arm_base_url=os.environ.get("AKV_ARM_BASE_URL", ARM_BASE_URL),
        http_timeout=float(os.environ.get("AKV_HTTP_TIMEOUT", "30")),
        cli_command=tuple(shlex.split(cli_command)) if cli_command else DEFAULT_CLI_COMMAND,
    )

    return Config(
        ui=ui,
        cache=cache,
        discovery=discovery,
        debug=_env_flag("AKV_DEBUG"),
        log_file=Path(os.environ.get("AKV_LOG_FILE", "akv_tui.log")),
    )


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
