"""
Storage Tests — Settings Persistence

Tests verify:
- Missing, corrupt or invalid stored settings fall back to defaults
- Saved settings round-trip through the JSON file store
- Save failures raise SettingsSaveError
- The file store keeps unrelated keys and writes atomically
"""

import json

import pytest

from dispenser.engine import DispenserSettings
from dispenser.storage import (
    InMemoryStore,
    JsonFileStore,
    SettingsRepository,
    SettingsSaveError,
    StoreConfig,
)


KEY = "water_dispenser_settings"


class BrokenStore:
    """Store that fails every operation."""

    def get_item(self, key):
        raise OSError("disk unavailable")

    def set_item(self, key, value):
        raise OSError("disk full")


class TestLoad:
    """Test loading with fallback to defaults."""

    def test_missing_returns_defaults(self):
        repo = SettingsRepository(InMemoryStore(), key=KEY)

        loaded = repo.load()

        assert loaded == DispenserSettings()
        assert repo.last_load_error is None

    def test_stored_values_are_loaded(self):
        blob = json.dumps({"low_water_threshold": 35, "dispensing_speed": 50, "dispensing_volume": 12.5})
        repo = SettingsRepository(InMemoryStore({KEY: blob}), key=KEY)

        loaded = repo.load()

        assert loaded.low_water_threshold == 35
        assert loaded.dispensing_speed == 50
        assert loaded.dispensing_volume == 12.5

    def test_corrupt_blob_falls_back(self):
        repo = SettingsRepository(InMemoryStore({KEY: "{not json"}), key=KEY)

        assert repo.load() == DispenserSettings()
        assert repo.last_load_error is not None

    def test_out_of_range_values_fall_back(self):
        blob = json.dumps({"low_water_threshold": 150})
        repo = SettingsRepository(InMemoryStore({KEY: blob}), key=KEY)

        assert repo.load() == DispenserSettings()
        assert "invalid" in repo.last_load_error

    def test_store_failure_falls_back(self):
        repo = SettingsRepository(BrokenStore(), key=KEY)

        assert repo.load() == DispenserSettings()
        assert "disk unavailable" in repo.last_load_error


class TestSave:
    """Test saving the whole record."""

    def test_save_then_load(self):
        store = InMemoryStore()
        repo = SettingsRepository(store, key=KEY)
        wanted = DispenserSettings(low_water_threshold=10, dispensing_speed=200, dispensing_volume=8)

        repo.save(wanted)

        assert SettingsRepository(store, key=KEY).load() == wanted

    def test_save_failure_raises(self):
        repo = SettingsRepository(BrokenStore(), key=KEY)

        with pytest.raises(SettingsSaveError):
            repo.save(DispenserSettings(low_water_threshold=30))


class TestJsonFileStore:
    """Test the file-backed key-value store."""

    def test_missing_file_reads_none(self, tmp_path):
        store = JsonFileStore(tmp_path / "store.json")

        assert store.get_item(KEY) is None

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "store.json"
        store = JsonFileStore(path)

        store.set_item(KEY, "value")

        assert path.exists()
        assert store.get_item(KEY) == "value"

    def test_preserves_other_keys(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")
        store = JsonFileStore(path)

        store.set_item(KEY, "blob")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == {"theme": "dark", KEY: "blob"}

    def test_no_temp_files_left_behind(self, tmp_path):
        store = JsonFileStore(tmp_path / "store.json")
        store.set_item(KEY, "a")
        store.set_item(KEY, "b")

        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]

    def test_repository_from_config(self, tmp_path):
        config = StoreConfig(path=tmp_path / "store.json", key=KEY)
        repo = SettingsRepository.from_config(config)
        wanted = DispenserSettings(low_water_threshold=42)

        repo.save(wanted)

        assert SettingsRepository.from_config(config).load() == wanted

    def test_non_object_file_fails_load(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")
        repo = SettingsRepository(JsonFileStore(path), key=KEY)

        assert repo.load() == DispenserSettings()
        assert repo.last_load_error is not None

    def test_corrupt_file_does_not_block_save(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{corrupt", encoding="utf-8")
        repo = SettingsRepository(JsonFileStore(path), key=KEY)
        assert repo.load() == DispenserSettings()

        wanted = DispenserSettings(low_water_threshold=30)
        repo.save(wanted)

        assert SettingsRepository(JsonFileStore(path), key=KEY).load() == wanted

    def test_non_object_file_is_replaced_on_save(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")
        store = JsonFileStore(path)

        store.set_item(KEY, "blob")

        assert json.loads(path.read_text(encoding="utf-8")) == {KEY: "blob"}
