"""
Secret name listing for one vault.

Both variants page through the vault until the cursor runs out and always
emit names sorted. The incremental variant also flushes a sorted prefix every
``batch`` names so a large vault starts rendering before the last page lands.
"""

from __future__ import annotations

import logging

from akv.backend import VaultBackend
from akv.dispatch import EventChannel
from akv.models import SecretListCachedSilently, SecretListUpdated, Vault

logger = logging.getLogger(__name__)

INCREMENTAL_BATCH = 20


async def list_secrets_incremental(
    backend: VaultBackend,
    channel: EventChannel,
    vault: Vault,
    batch: int = INCREMENTAL_BATCH,
) -> None:
    """List ``vault``, emitting a SecretListUpdated every ``batch`` names and once at the end."""
    logger.debug("Starting incremental list for vault '%s'", vault.name)
    names: list[str] = []
    flushed = 0
    cursor: str | None = None
    while True:
        page = await backend.list_secret_names_page(vault, cursor)
        for name in page.value:
            names.append(name)
            if len(names) - flushed >= batch:
                channel.send(SecretListUpdated(vault.name, sorted(names)))
                flushed = len(names)
        if not page.next_cursor:
            break
        cursor = page.next_cursor
    channel.send(SecretListUpdated(vault.name, sorted(names)))
    logger.debug("Completed incremental list for vault '%s' (%d)", vault.name, len(names))


async def list_secrets_full(
    backend: VaultBackend,
    channel: EventChannel,
    vault: Vault,
    *,
    visible: bool = True,
) -> None:
    """List ``vault`` completely, then emit once. ``visible=False`` only refreshes the cache."""
    logger.debug("Starting full list for vault '%s'", vault.name)
    names: list[str] = []
    cursor: str | None = None
    while True:
        page = await backend.list_secret_names_page(vault, cursor)
        names.extend(page.value)
        if not page.next_cursor:
            break
        cursor = page.next_cursor
    names.sort()
    if visible:
        channel.send(SecretListUpdated(vault.name, names))
    else:
        channel.send(SecretListCachedSilently(vault.name, names))
    logger.debug("Completed full list for vault '%s' (%d)", vault.name, len(names))
