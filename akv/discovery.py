"""
Vault discovery — enumerate every vault the signed-in identity can reach.

Two stages:
  1. ARM: page through subscriptions, then fan out one paginated vault
     listing per subscription. A subscription that fails contributes nothing.
  2. Fallback: if ARM found nothing, or the subscription listing itself
     answered with an error, ask the az CLI (`az keyvault list`). A token
     failure is not retried through the CLI and propagates.
     The subprocess runs in a worker thread so it can't stall the UI.

Usage:
    from akv.discovery import discover_vaults

    vaults = await discover_vaults(backend)
"""

from __future__ import annotations

import asyncio
import json
import logging
import shlex
import subprocess
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from akv.azure import parse_vault
from akv.backend import AuthenticationError, BackendError, VaultBackend
from akv.models import Page, Vault

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CLI_COMMAND = ("az", "keyvault", "list", "-o", "json")


class FallbackError(Exception):
    """The CLI fallback failed (missing binary, non-zero exit, bad output)."""


async def collect_pages(fetch: Callable[[str | None], Awaitable[Page[T]]]) -> list[T]:
    """Follow ``next_cursor`` until it's absent, accumulating every page's items."""
    items: list[T] = []
    cursor: str | None = None
    while True:
        page = await fetch(cursor)
        items.extend(page.value)
        if not page.next_cursor:
            return items
        cursor = page.next_cursor


async def _vaults_for_subscription(backend: VaultBackend, subscription_id: str) -> list[Vault]:
    try:
        return await collect_pages(
            lambda cursor: backend.list_vaults_page(subscription_id, cursor)
        )
    except Exception as e:
        logger.debug("Vault listing failed for subscription %s: %s", subscription_id, e)
        return []


async def discover_from_subscriptions(backend: VaultBackend) -> list[Vault]:
    """Primary stage: every vault in every subscription, subscription order preserved."""
    subscriptions = await collect_pages(backend.list_subscriptions_page)
    logger.debug("Found %d subscription(s)", len(subscriptions))
    results = await asyncio.gather(
        *(_vaults_for_subscription(backend, sub_id) for sub_id in subscriptions)
    )
    vaults: list[Vault] = []
    for chunk in results:
        vaults.extend(chunk)
    return vaults


def parse_cli_vaults(output: str | bytes) -> list[Vault]:
    """Parse `az keyvault list -o json` output. Raises FallbackError on anything but a JSON array."""
    try:
        data = json.loads(output)
    except ValueError as e:
        raise FallbackError(f"invalid JSON: {e}") from e
    if not isinstance(data, list):
        raise FallbackError("expected a JSON array of vaults")
    vaults = []
    for item in data:
        vault = parse_vault(item) if isinstance(item, dict) else None
        if vault is not None:
            vaults.append(vault)
    return vaults


def _run_cli(command: Sequence[str]) -> bytes:
    try:
        proc = subprocess.run(list(command), capture_output=True, check=False)
    except OSError as e:
        raise FallbackError(f"could not run {command[0]}: {e}") from e
    if proc.returncode != 0:
        raise FallbackError(f"{command[0]} exited with status {proc.returncode}")
    return proc.stdout


async def discover_from_cli(command: Sequence[str] = DEFAULT_CLI_COMMAND) -> list[Vault]:
    """Fallback stage. Never raises: any failure yields an empty list."""
    try:
        output = await asyncio.to_thread(_run_cli, command)
        return parse_cli_vaults(output)
    except FallbackError as e:
        logger.debug("CLI vault fallback failed (%s): %s", shlex.join(command), e)
        return []


def dedupe_vaults(vaults: Sequence[Vault]) -> list[Vault]:
    """Collapse vaults sharing a name; the first one seen wins."""
    seen: set[str] = set()
    unique = []
    for vault in vaults:
        if vault.name in seen:
            logger.debug("Dropping duplicate vault %s (%s)", vault.name, vault.endpoint)
            continue
        seen.add(vault.name)
        unique.append(vault)
    return unique


async def discover_vaults(
    backend: VaultBackend,
    cli_command: Sequence[str] | None = DEFAULT_CLI_COMMAND,
) -> list[Vault]:
    """Run both discovery stages. Pass ``cli_command=None`` to disable the fallback."""
    try:
        vaults = await discover_from_subscriptions(backend)
    except AuthenticationError:
        raise
    except BackendError as e:
        logger.debug("ARM discovery failed: %s", e)
        vaults = []
    if not vaults and cli_command:
        logger.debug("No vaults from ARM; trying CLI fallback")
        vaults = await discover_from_cli(cli_command)
    return dedupe_vaults(vaults)
