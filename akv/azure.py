"""
Azure implementation of the vault backend.

Management-plane listings (subscriptions, vaults) go through ARM with
httpx.AsyncClient and a bearer token; secret operations go through the async
Key Vault SDK client, one per vault endpoint. Both share a single
azure-identity credential, which caches tokens itself.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx
from azure.core.exceptions import AzureError, ClientAuthenticationError
from azure.identity.aio import DefaultAzureCredential
from azure.keyvault.secrets.aio import SecretClient

from akv.backend import MANAGEMENT_SCOPE, AuthenticationError, ResponseError
from akv.models import Page, Vault

logger = logging.getLogger(__name__)

ARM_BASE_URL = "https://management.azure.com"
SUBSCRIPTIONS_API_VERSION = "2020-01-01"
VAULTS_API_VERSION = "2023-07-01"


def parse_vault(item: dict[str, Any]) -> Vault | None:
    """Extract a Vault from an ARM / az CLI vault object, or None if incomplete."""
    name = item.get("name")
    props = item.get("properties") or {}
    uri = props.get("vaultUri") if isinstance(props, dict) else None
    if isinstance(name, str) and isinstance(uri, str):
        return Vault(name=name, endpoint=uri)
    return None


class AzureVaultBackend:
    """Async client for ARM discovery and Key Vault secret operations."""

    def __init__(
        self,
        credential: Any | None = None,
        *,
        base_url: str = ARM_BASE_URL,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.credential = credential if credential is not None else DefaultAzureCredential()
        self._client = http_client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        self._secret_clients: dict[str, SecretClient] = {}

    async def close(self) -> None:
        for client in self._secret_clients.values():
            await client.close()
        self._secret_clients.clear()
        await self._client.aclose()
        close = getattr(self.credential, "close", None)
        if close is not None:
            await close()

    # ── Tokens ──────────────────────────────────────────────────────────

    async def _get_token(self, *scopes: str) -> Any:
        try:
            return await self.credential.get_token(*scopes)
        except ClientAuthenticationError as e:
            raise AuthenticationError(str(e)) from e

    async def acquire_token(self, scopes: Sequence[str] = (MANAGEMENT_SCOPE,)) -> float:
        logger.debug("Acquiring token for %s", ", ".join(scopes))
        token = await self._get_token(*scopes)
        return float(token.expires_on)

    # ── ARM (management plane) ──────────────────────────────────────────

    async def _arm_get(self, url: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        """GET an ARM URL (path or absolute nextLink) and return the JSON page."""
        token = await self._get_token(MANAGEMENT_SCOPE)
        try:
            resp = await self._client.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {token.token}"},
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise ResponseError(f"HTTP {e.response.status_code} from {e.request.url}") from e
        except httpx.HTTPError as e:
            raise ResponseError(f"Request failed: {e}") from e
        except ValueError as e:
            raise ResponseError(f"Invalid JSON from {url}: {e}") from e
        if not isinstance(data, dict):
            raise ResponseError(f"Unexpected response shape from {url}")
        return data

    async def list_subscriptions_page(self, cursor: str | None = None) -> Page[str]:
        if cursor:
            data = await self._arm_get(cursor)
        else:
            data = await self._arm_get(
                "/subscriptions", params={"api-version": SUBSCRIPTIONS_API_VERSION}
            )
        ids = [
            sub["subscriptionId"]
            for sub in data.get("value", [])
            if isinstance(sub, dict) and isinstance(sub.get("subscriptionId"), str)
        ]
        return Page(value=ids, next_cursor=data.get("nextLink"))

    async def list_vaults_page(
        self, subscription_id: str, cursor: str | None = None
    ) -> Page[Vault]:
        if cursor:
            data = await self._arm_get(cursor)
        else:
            data = await self._arm_get(
                f"/subscriptions/{subscription_id}/providers/Microsoft.KeyVault/vaults",
                params={"api-version": VAULTS_API_VERSION},
            )
        vaults = []
        for item in data.get("value", []):
            vault = parse_vault(item) if isinstance(item, dict) else None
            if vault is not None:
                vaults.append(vault)
        return Page(value=vaults, next_cursor=data.get("nextLink"))

    # ── Key Vault (data plane) ──────────────────────────────────────────

    def _secret_client(self, vault: Vault) -> SecretClient:
        client = self._secret_clients.get(vault.endpoint)
        if client is None:
            client = SecretClient(vault_url=vault.endpoint, credential=self.credential)
            self._secret_clients[vault.endpoint] = client
        return client

    async def list_secret_names_page(
        self, vault: Vault, cursor: str | None = None
    ) -> Page[str]:
        client = self._secret_client(vault)
        try:
            pages = client.list_properties_of_secrets().by_page(continuation_token=cursor)
            try:
                page = await anext(pages)
            except StopAsyncIteration:
                return Page()
            names = [props.name async for props in page if props.name]
        except ClientAuthenticationError as e:
            raise AuthenticationError(str(e)) from e
        except AzureError as e:
            raise ResponseError(str(e)) from e
        return Page(value=names, next_cursor=pages.continuation_token)

    async def get_secret_value(self, vault: Vault, name: str) -> str:
        try:
            secret = await self._secret_client(vault).get_secret(name)
        except ClientAuthenticationError as e:
            raise AuthenticationError(str(e)) from e
        except AzureError as e:
            raise ResponseError(str(e)) from e
        return secret.value or ""

    async def set_secret_value(self, vault: Vault, name: str, value: str) -> None:
        try:
            await self._secret_client(vault).set_secret(name, value)
        except ClientAuthenticationError as e:
            raise AuthenticationError(str(e)) from e
        except AzureError as e:
            raise ResponseError(str(e)) from e

    async def delete_secret(self, vault: Vault, name: str) -> None:
        try:
            await self._secret_client(vault).delete_secret(name)
        except ClientAuthenticationError as e:
            raise AuthenticationError(str(e)) from e
        except AzureError as e:
            raise ResponseError(str(e)) from e
