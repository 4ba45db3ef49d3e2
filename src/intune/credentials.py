"""App-registration credentials and the secret stores they can be read from."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

from azure.core.exceptions import AzureError, ResourceNotFoundError

from intune.errors import CredentialsError
from settings.loader import SecretNames, Settings

LOGGER = logging.getLogger(__name__)

FIELDS = ("tenant_id", "client_id", "client_secret")


@dataclass(frozen=True)
class Credentials:
    tenant_id: str
    client_id: str
    client_secret: str

    def __repr__(self) -> str:
        return f"Credentials(tenant_id={self.tenant_id!r}, client_id={self.client_id!r}, client_secret='***')"


class SecretStore(Protocol):
    def get(self, field: str) -> Optional[str]:
        ...


class EnvSecretStore:
    """Reads credentials from environment variables."""

    def __init__(self, names: SecretNames, environ: Optional[Mapping[str, str]] = None) -> None:
        self._names = names
        self._environ = os.environ if environ is None else environ

    def get(self, field: str) -> Optional[str]:
        return self._environ.get(getattr(self._names, field)) or None


class KeyVaultSecretStore:
    """Reads credentials from Azure Key Vault secrets."""

    def __init__(self, names: SecretNames, client: Any) -> None:
        self._names = names
        self._client = client

    @classmethod
    def from_vault_url(cls, vault_url: str, names: SecretNames) -> "KeyVaultSecretStore":
        from azure.identity import DefaultAzureCredential
        from azure.keyvault.secrets import SecretClient

        client = SecretClient(vault_url=vault_url, credential=DefaultAzureCredential())
        return cls(names, client)

    def get(self, field: str) -> Optional[str]:
        name = getattr(self._names, field)
        try:
            secret = self._client.get_secret(name)
        except ResourceNotFoundError:
            return None
        except AzureError as exc:
            raise CredentialsError(f"Key Vault lookup of '{name}' failed: {exc}") from exc
        return secret.value or None


def build_secret_store(settings: Settings) -> SecretStore:
    cfg = settings.secret_store
    if cfg.backend.lower() == "keyvault":
        return KeyVaultSecretStore.from_vault_url(cfg.vault_url, cfg.names)
    return EnvSecretStore(cfg.names)


def resolve_credentials(
    store: SecretStore,
    *,
    tenant_id: Optional[str] = None,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
) -> Credentials:
    """Use the given values, filling any that are missing from the store."""

    values = {"tenant_id": tenant_id, "client_id": client_id, "client_secret": client_secret}
    missing = [field for field in FIELDS if not values[field]]
    if missing:
        LOGGER.info("Resolving %s from the secret store", ", ".join(missing))
        for field in missing:
            values[field] = store.get(field)

    still_missing = [field for field in FIELDS if not values[field]]
    if still_missing:
        raise CredentialsError(f"Missing credentials: {', '.join(still_missing)}")
    return Credentials(**values)
