"""
Bounded preload of secret-name caches.

After discovery, every vault gets a silent full listing so opening it later
is instant. A shared semaphore caps how many listings hit the backend at once.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from akv.backend import VaultBackend
from akv.dispatch import EventChannel
from akv.listing import list_secrets_full
from akv.models import Vault

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4


class PreloadScheduler:
    """Warms the secret-list cache for many vaults, at most ``concurrency`` at a time."""

    def __init__(
        self,
        backend: VaultBackend,
        channel: EventChannel,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        self.backend = backend
        self.channel = channel
        self.concurrency = max(1, concurrency)
        self._semaphore = asyncio.Semaphore(self.concurrency)
        self.in_flight = 0
        self.peak_in_flight = 0

    async def run(self, vaults: Sequence[Vault]) -> None:
        logger.info("Starting background preload for %d vaults", len(vaults))
        await asyncio.gather(*(self._preload(vault) for vault in vaults))
        logger.info("Background preload finished")

    async def _preload(self, vault: Vault) -> None:
        async with self._semaphore:
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            try:
                await list_secrets_full(self.backend, self.channel, vault, visible=False)
                logger.debug("Preload succeeded for %s", vault.name)
            except Exception as e:
                logger.debug("Preload failed for %s: %s", vault.name, e)
            finally:
                self.in_flight -= 1
