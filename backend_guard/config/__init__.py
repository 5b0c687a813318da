"""
Configuration management for Backend Guard.

Loads settings from environment variables and an optional .env file.
"""

from backend_guard.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
