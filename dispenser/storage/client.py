"""
Settings Storage — Key-Value Persistence for User Settings

The settings record is serialized to JSON and stored as a single opaque
blob under a fixed key. The store itself only knows strings:

    store.set_item("water_dispenser_settings", '{"low_water_threshold": 20, ...}')

Failure semantics:
- load: any failure is logged and defaults are returned (never raises)
- save: failures raise SettingsSaveError; nothing is written partially
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from threading import Lock
from typing import Dict, Optional, Protocol

from pydantic import ValidationError

from dispenser.engine.schemas import DispenserSettings

from .config import StoreConfig, load_config

logger = logging.getLogger(__name__)


class SettingsLoadError(Exception):
    """Stored settings could not be read or parsed."""
    pass


class SettingsSaveError(Exception):
    """Settings could not be persisted."""
    pass


# ============================================================================
# Key-Value Stores
# ============================================================================

class KeyValueStore(Protocol):
    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...


class InMemoryStore:
    """Process-local store. Useful for tests and ephemeral runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """
    Store backed by one JSON object file ({key: value, ...}).

    Writes go to a temp file in the same directory and are moved into place
    with os.replace, so a crash never leaves a half-written file.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = Lock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            data = self._read()
        value = data.get(key)
        return value if value is None else str(value)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            try:
                data = self._read()
            except (OSError, ValueError) as e:
                # An unreadable file must not block saving; it gets replaced.
                logger.warning(f"[JsonFileStore] Discarding unreadable {self.path}: {e}")
                data = {}
            data[key] = value
            self._write(data)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return {}
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".store-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


# ============================================================================
# Settings Repository
# ============================================================================

class SettingsRepository:
    """
    Loads and saves the DispenserSettings record.

    Usage:
        repo = SettingsRepository(JsonFileStore(Path("data/store.json")))
        current = repo.load()
        repo.save(current.model_copy(update={"low_water_threshold": 30}))
    """

    def __init__(self, store: KeyValueStore, key: Optional[str] = None):
        self.store = store
        self.key = key or load_config().key
        self.last_load_error: Optional[str] = None

    @classmethod
    def from_config(cls, config: Optional[StoreConfig] = None) -> "SettingsRepository":
        config = config or load_config()
        return cls(JsonFileStore(config.path), key=config.key)

    def load(self) -> DispenserSettings:
        """
        Load settings, falling back to defaults on any failure.

        The failure (if any) is kept in last_load_error.
        """
        try:
            loaded = self._load()
        except SettingsLoadError as e:
            self.last_load_error = str(e)
            logger.warning(f"[SettingsRepository] {e}. Using defaults.")
            return DispenserSettings()

        self.last_load_error = None
        if loaded is None:
            logger.info("[SettingsRepository] No stored settings. Using defaults.")
            return DispenserSettings()
        logger.info(f"[SettingsRepository] Loaded settings: {loaded.model_dump()}")
        return loaded

    def save(self, new_settings: DispenserSettings) -> DispenserSettings:
        """
        Persist the whole settings record.

        Raises:
            SettingsSaveError: If the store rejects the write
        """
        blob = new_settings.model_dump_json()
        try:
            self.store.set_item(self.key, blob)
        except Exception as e:
            logger.error(f"[SettingsRepository] Save failed: {e}")
            raise SettingsSaveError(f"Failed to save settings: {e}") from e
        logger.info(f"[SettingsRepository] Saved settings: {new_settings.model_dump()}")
        return new_settings

    def _load(self) -> Optional[DispenserSettings]:
        try:
            blob = self.store.get_item(self.key)
        except Exception as e:
            raise SettingsLoadError(f"Failed to read settings: {e}") from e
        if blob is None:
            return None
        try:
            return DispenserSettings.model_validate_json(blob)
        except ValidationError as e:
            raise SettingsLoadError(f"Stored settings are invalid: {e}") from e
