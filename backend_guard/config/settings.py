"""
Application settings.

Settings are an immutable snapshot of the environment, built once at startup
and passed explicitly to the app factory, orchestrator and adapters. There is
no module-level settings singleton, so several configurations (different
networks, providers) can coexist in one process and in tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from backend_guard.config.env import (
    env_float,
    env_int,
    env_list,
    get_chain_network,
    get_chain_network_key,
    get_explorer_api_url,
    get_registry_address,
    load_guard_env,
)

DEFAULT_ANALYZER_TIMEOUT_SEC = 45.0
DEFAULT_ANALYZER_MAX_RETRIES = 2
DEFAULT_ANALYZER_BACKOFF_SEC = 1.0
DEFAULT_MAX_CODE_LENGTH = 100_000
DEFAULT_EXPLORER_TIMEOUT_SEC = 15.0


@dataclass(frozen=True)
class Settings:
    """Typed service configuration."""

    gemini_api_key: str = ""
    gemini_models: tuple[str, ...] = ()
    registry_address: str = ""
    chain_network: str = "base-sepolia"
    chain_id: int = 84532
    explorer_api_url: str = ""
    explorer_api_key: str = ""
    explorer_timeout_sec: float = DEFAULT_EXPLORER_TIMEOUT_SEC
    analyzer_timeout_sec: float = DEFAULT_ANALYZER_TIMEOUT_SEC
    analyzer_max_retries: int = DEFAULT_ANALYZER_MAX_RETRIES
    analyzer_backoff_sec: float = DEFAULT_ANALYZER_BACKOFF_SEC
    max_code_length: int = DEFAULT_MAX_CODE_LENGTH
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "info"

    @property
    def analyzer_configured(self) -> bool:
        return bool(self.gemini_api_key)

    def masked(self) -> dict[str, object]:
        """Settings safe to log: secrets replaced by a presence flag."""
        return {
            "gemini_api_key_set": bool(self.gemini_api_key),
            "gemini_models": list(self.gemini_models),
            "registry_address": self.registry_address,
            "chain_network": self.chain_network,
            "chain_id": self.chain_id,
            "explorer_api_url": self.explorer_api_url,
            "explorer_api_key_set": bool(self.explorer_api_key),
            "analyzer_timeout_sec": self.analyzer_timeout_sec,
            "analyzer_max_retries": self.analyzer_max_retries,
            "max_code_length": self.max_code_length,
        }


def get_settings() -> Settings:
    """
    Build Settings from environment variables (and .env).

    Returns a new object on every call; callers keep the instance they were given.
    """
    load_guard_env()
    network = get_chain_network()
    max_retries = env_int("ANALYZER_MAX_RETRIES", DEFAULT_ANALYZER_MAX_RETRIES)
    timeout = env_float("ANALYZER_TIMEOUT_SEC", DEFAULT_ANALYZER_TIMEOUT_SEC)
    return Settings(
        gemini_api_key=(os.getenv("GEMINI_API_KEY") or "").strip(),
        gemini_models=env_list("GEMINI_MODELS"),
        registry_address=get_registry_address(),
        chain_network=get_chain_network_key(),
        chain_id=network.chain_id,
        explorer_api_url=get_explorer_api_url(),
        explorer_api_key=(os.getenv("BASESCAN_API_KEY") or os.getenv("EXPLORER_API_KEY") or "").strip(),
        explorer_timeout_sec=env_float("EXPLORER_TIMEOUT_SEC", DEFAULT_EXPLORER_TIMEOUT_SEC),
        analyzer_timeout_sec=timeout if timeout > 0 else DEFAULT_ANALYZER_TIMEOUT_SEC,
        analyzer_max_retries=max(0, max_retries),
        analyzer_backoff_sec=max(0.0, env_float("ANALYZER_BACKOFF_SEC", DEFAULT_ANALYZER_BACKOFF_SEC)),
        max_code_length=max(1, env_int("MAX_CODE_LENGTH", DEFAULT_MAX_CODE_LENGTH)),
        api_host=(os.getenv("API_HOST") or "0.0.0.0").strip(),
        api_port=env_int("API_PORT", 8000),
        log_level=(os.getenv("LOG_LEVEL") or "info").strip().lower(),
    )
