import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

SETTINGS_DIR = Path(__file__).resolve().parent
DEFAULT_SETTINGS = SETTINGS_DIR / "category_sync.yaml"
ENV_VAR = "CATEGORY_SYNC_CONFIG"

SECRET_BACKENDS = {"env", "keyvault"}


class SettingsError(RuntimeError):
    """Raised when the settings file is missing or malformed."""


class SecretNames(BaseModel):
    tenant_id: str = "INTUNE_TENANT_ID"
    client_id: str = "INTUNE_CLIENT_ID"
    client_secret: str = "INTUNE_CLIENT_SECRET"


class SecretStoreSettings(BaseModel):
    backend: str = "env"
    vault_url: Optional[str] = None
    names: SecretNames = Field(default_factory=SecretNames)


class RateLimit(BaseModel):
    rate_per_sec: float = 10
    burst: int = 20


class Settings(BaseModel):
    graph_base_url: str = "https://graph.microsoft.com/beta"
    authority: str = "https://login.microsoftonline.com"
    scope: str = "https://graph.microsoft.com/.default"
    operating_system: str = "Windows"
    no_category_labels: List[str] = Field(default_factory=lambda: ["Unassigned", "Unknown"])
    secret_store: SecretStoreSettings = Field(default_factory=SecretStoreSettings)
    rate_limits: Dict[str, RateLimit] = Field(default_factory=lambda: {"graph": RateLimit()})
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def rate_limit(self, api: str) -> RateLimit:
        return self.rate_limits.get(api) or RateLimit()


def load_settings(path: Optional[Path] = None) -> Settings:
    if path is None:
        override = os.getenv(ENV_VAR)
        path = Path(override) if override else DEFAULT_SETTINGS
    if not path.exists():
        raise SettingsError(f"No settings file found at {path}")

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise SettingsError(f"Settings file {path} is not valid YAML: {exc}") from exc
    if not isinstance(raw, dict):
        raise SettingsError(f"Settings file {path} must contain a mapping")

    try:
        settings = Settings.model_validate(raw)
    except ValidationError as exc:
        raise SettingsError(f"Invalid settings in {path}: {exc}") from exc

    backend = settings.secret_store.backend.lower()
    if backend not in SECRET_BACKENDS:
        raise SettingsError(
            f"Unknown secret store backend '{settings.secret_store.backend}'. "
            f"Available: {sorted(SECRET_BACKENDS)}"
        )
    if backend == "keyvault" and not settings.secret_store.vault_url:
        raise SettingsError("secret_store.vault_url is required for the keyvault backend")
    return settings
