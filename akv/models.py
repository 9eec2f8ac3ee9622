"""
Data models for akv.

All models are plain dataclasses. Events are the only thing background tasks
hand back to the event loop; they are immutable once sent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Vault:
    """A Key Vault reachable at ``endpoint`` (the vault URI)."""

    name: str
    endpoint: str


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a paginated listing. ``next_cursor`` is None on the last page."""

    value: list[T] = field(default_factory=list)
    next_cursor: str | None = None


# ── Events ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class VaultsDiscovered:
    vaults: list[Vault]


@dataclass(frozen=True)
class SecretListUpdated:
    """Secret names for a vault.

    Always written to the secret-list cache. Only shown when ``visible`` is
    set and the vault is still the current one when the event is applied.
    """

    vault_name: str
    names: list[str]
    visible: bool = True


@dataclass(frozen=True)
class SecretListCachedSilently(SecretListUpdated):
    """Cache-only listing result (preload)."""

    visible: bool = False


@dataclass(frozen=True)
class SecretValueLoaded:
    vault_name: str
    name: str
    value: str


@dataclass(frozen=True)
class EditRequested:
    vault_name: str
    name: str
    value: str


@dataclass(frozen=True)
class TokenRefreshed:
    fetched_at: float  # engine clock (monotonic seconds)
    ttl: float  # seconds


@dataclass(frozen=True)
class StatusMessage:
    text: str


@dataclass(frozen=True)
class SecretWritten:
    """A set or delete issued from this session succeeded."""

    vault_name: str
    name: str
    text: str


Event = (
    VaultsDiscovered
    | SecretListUpdated
    | SecretValueLoaded
    | EditRequested
    | TokenRefreshed
    | StatusMessage
    | SecretWritten
)
