"""
Vault backend capability.

The engine never talks to Azure directly; it drives whatever implements
``VaultBackend``. ``akv.azure.AzureVaultBackend`` is the real one, tests use
an in-memory fake.

Listings are exposed page by page so the caller owns the pagination loop:
each ``*_page`` call takes the cursor returned by the previous page (None for
the first) and returns a ``Page`` whose ``next_cursor`` is None on the last.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from akv.models import Page, Vault

MANAGEMENT_SCOPE = "https://management.azure.com/.default"


class BackendError(Exception):
    """Base class for failures talking to the vault backend."""


class AuthenticationError(BackendError):
    """A token could not be acquired."""


class ResponseError(BackendError):
    """The backend answered with an error status or a body we can't parse."""


class VaultBackend(Protocol):
    async def acquire_token(self, scopes: Sequence[str] = (MANAGEMENT_SCOPE,)) -> float:
        """Acquire a token for ``scopes``. Returns its expiry as epoch seconds."""
        ...

    async def list_subscriptions_page(self, cursor: str | None = None) -> Page[str]: ...

    async def list_vaults_page(
        self, subscription_id: str, cursor: str | None = None
    ) -> Page[Vault]: ...

    async def list_secret_names_page(
        self, vault: Vault, cursor: str | None = None
    ) -> Page[str]: ...

    async def get_secret_value(self, vault: Vault, name: str) -> str: ...

    async def set_secret_value(self, vault: Vault, name: str, value: str) -> None: ...

    async def delete_secret(self, vault: Vault, name: str) -> None: ...

    async def close(self) -> None: ...
