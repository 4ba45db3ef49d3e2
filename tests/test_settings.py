from pathlib import Path

import pytest

from settings.loader import DEFAULT_SETTINGS, SettingsError, load_settings


def test_default_settings_file_loads():
    settings = load_settings(DEFAULT_SETTINGS)
    assert settings.operating_system == "Windows"
    assert settings.no_category_labels == ["Unassigned", "Unknown"]
    assert settings.secret_store.backend == "env"
    assert settings.rate_limit("graph").burst == 20


def test_environment_variable_selects_file(tmp_path: Path, monkeypatch):
    path = tmp_path / "sync.yaml"
    path.write_text("operating_system: Windows\nno_category_labels: [Nicht zugewiesen]\n")
    monkeypatch.setenv("CATEGORY_SYNC_CONFIG", str(path))

    settings = load_settings()
    assert settings.no_category_labels == ["Nicht zugewiesen"]
    assert settings.graph_base_url == "https://graph.microsoft.com/beta"


def test_missing_file_raises(tmp_path: Path):
    with pytest.raises(SettingsError):
        load_settings(tmp_path / "nope.yaml")


def test_unknown_secret_backend_raises(tmp_path: Path):
    path = tmp_path / "sync.yaml"
    path.write_text("secret_store:\n  backend: vaultwarden\n")
    with pytest.raises(SettingsError) as excinfo:
        load_settings(path)
    assert "vaultwarden" in str(excinfo.value)


def test_keyvault_backend_needs_vault_url(tmp_path: Path):
    path = tmp_path / "sync.yaml"
    path.write_text("secret_store:\n  backend: keyvault\n")
    with pytest.raises(SettingsError):
        load_settings(path)


def test_non_mapping_file_raises(tmp_path: Path):
    path = tmp_path / "sync.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(SettingsError):
        load_settings(path)
