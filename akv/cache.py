"""
In-memory caches owned by the event loop.

Three independent stores:
    TokenCache        — when the management token was fetched and how long it lives
    SecretListCache   — sorted secret names per vault
    SecretValueCache  — secret values per (vault, secret)

Nothing here is thread-safe or async; every mutation happens on the event
loop while events are being applied. Nothing is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field

REFRESH_THRESHOLD_MIN = 1
REFRESH_THRESHOLD_MAX = 120


def refresh_threshold(ttl: float) -> int:
    """Seconds before expiry at which a token counts as due: 10% of ttl, clamped to 1..120."""
    ttl_secs = max(int(ttl), 1)
    return min(max(ttl_secs // 10, REFRESH_THRESHOLD_MIN), REFRESH_THRESHOLD_MAX)


@dataclass(frozen=True)
class TokenCacheEntry:
    fetched_at: float
    ttl: float

    @property
    def expires_at(self) -> float:
        return self.fetched_at + self.ttl


@dataclass
class TokenCache:
    entry: TokenCacheEntry | None = None

    def store(self, fetched_at: float, ttl: float) -> None:
        self.entry = TokenCacheEntry(fetched_at=fetched_at, ttl=ttl)

    def should_refresh(self, now: float) -> bool:
        if self.entry is None:
            return True
        return now + refresh_threshold(self.entry.ttl) >= self.entry.expires_at


@dataclass(frozen=True)
class SecretListCacheEntry:
    vault_name: str
    secret_names: list[str]
    refreshed_at: float


@dataclass
class SecretListCache:
    entries: dict[str, SecretListCacheEntry] = field(default_factory=dict)

    def put(self, vault_name: str, names: list[str], now: float) -> SecretListCacheEntry:
        """Replace the entry for ``vault_name``. Names are stored sorted."""
        entry = SecretListCacheEntry(
            vault_name=vault_name,
            secret_names=sorted(names),
            refreshed_at=now,
        )
        self.entries[vault_name] = entry
        return entry

    def get(self, vault_name: str) -> SecretListCacheEntry | None:
        return self.entries.get(vault_name)

    def is_stale(self, vault_name: str, now: float, max_age: float) -> bool:
        entry = self.entries.get(vault_name)
        return entry is None or now - entry.refreshed_at > max_age

    def __contains__(self, vault_name: object) -> bool:
        return vault_name in self.entries

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class SecretValueCache:
    values: dict[tuple[str, str], str] = field(default_factory=dict)

    def get(self, vault_name: str, name: str) -> str | None:
        return self.values.get((vault_name, name))

    def put(self, vault_name: str, name: str, value: str) -> None:
        self.values[(vault_name, name)] = value

    def evict(self, vault_name: str, name: str) -> None:
        self.values.pop((vault_name, name), None)

    def __len__(self) -> int:
        return len(self.values)


@dataclass
class CacheLayer:
    token: TokenCache = field(default_factory=TokenCache)
    secret_lists: SecretListCache = field(default_factory=SecretListCache)
    secret_values: SecretValueCache = field(default_factory=SecretValueCache)
