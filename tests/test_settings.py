"""
Tests for environment-driven Settings.
"""

from __future__ import annotations

import pytest

from backend_guard.config import env
from backend_guard.config.env import DEFAULT_AUDIT_REGISTRY_ADDRESS
from backend_guard.config.settings import DEFAULT_ANALYZER_TIMEOUT_SEC, get_settings

ENV_VARS = (
    "GEMINI_API_KEY",
    "GEMINI_MODELS",
    "AUDIT_REGISTRY_ADDRESS",
    "NEXT_PUBLIC_AUDIT_REGISTRY_ADDRESS",
    "CHAIN_NETWORK",
    "EXPLORER_API_URL",
    "BASESCAN_API_KEY",
    "EXPLORER_API_KEY",
    "ANALYZER_TIMEOUT_SEC",
    "ANALYZER_MAX_RETRIES",
    "ANALYZER_BACKOFF_SEC",
    "MAX_CODE_LENGTH",
    "API_PORT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """No ambient env and no project .env file."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(env, "_ENV_PATH", tmp_path / "missing.env")


def test_defaults():
    s = get_settings()
    assert s.gemini_api_key == ""
    assert not s.analyzer_configured
    assert s.registry_address == DEFAULT_AUDIT_REGISTRY_ADDRESS
    assert s.chain_network == "base-sepolia"
    assert s.chain_id == 84532
    assert s.explorer_api_url == "https://api-sepolia.basescan.org/api"
    assert s.analyzer_max_retries == 2
    assert s.max_code_length == 100_000


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "secret")
    monkeypatch.setenv("GEMINI_MODELS", "gemini-2.5-pro, gemini-2.0-flash,")
    monkeypatch.setenv("CHAIN_NETWORK", "arbitrum_sepolia")
    monkeypatch.setenv("ANALYZER_MAX_RETRIES", "4")
    monkeypatch.setenv("API_PORT", "9000")
    s = get_settings()
    assert s.analyzer_configured
    assert s.gemini_models == ("gemini-2.5-pro", "gemini-2.0-flash")
    assert s.chain_id == 421614
    assert s.explorer_api_url == "https://api-sepolia.arbiscan.io/api"
    assert s.analyzer_max_retries == 4
    assert s.api_port == 9000


def test_invalid_values_fall_back(monkeypatch):
    monkeypatch.setenv("CHAIN_NETWORK", "moonbase")
    monkeypatch.setenv("ANALYZER_TIMEOUT_SEC", "soon")
    monkeypatch.setenv("ANALYZER_MAX_RETRIES", "-3")
    s = get_settings()
    assert s.chain_network == "base-sepolia"
    assert s.analyzer_timeout_sec == DEFAULT_ANALYZER_TIMEOUT_SEC
    assert s.analyzer_max_retries == 0


def test_masked_hides_secrets(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "secret")
    monkeypatch.setenv("BASESCAN_API_KEY", "also-secret")
    masked = get_settings().masked()
    assert "secret" not in str(masked.values())
    assert masked["gemini_api_key_set"] is True
    assert masked["explorer_api_key_set"] is True


def test_settings_are_fresh_snapshots(monkeypatch):
    first = get_settings()
    monkeypatch.setenv("GEMINI_API_KEY", "later")
    assert first.gemini_api_key == ""
    assert get_settings().gemini_api_key == "later"
