"""
Storage Module — Persisted User Settings

Public API:
- SettingsRepository: load (defaults on failure) / save (raises on failure)
- KeyValueStore, InMemoryStore, JsonFileStore: blob stores
- SettingsLoadError, SettingsSaveError
- StoreConfig, load_config
"""

from .client import (
    InMemoryStore,
    JsonFileStore,
    KeyValueStore,
    SettingsLoadError,
    SettingsRepository,
    SettingsSaveError,
)
from .config import StoreConfig, load_config

__all__ = [
    "SettingsRepository",
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    "SettingsLoadError",
    "SettingsSaveError",
    "StoreConfig",
    "load_config",
]
