"""
Settings Store Configuration

Where the user settings blob lives and under which key.
"""

from dataclasses import dataclass
from pathlib import Path

from dispenser.config import settings


@dataclass(frozen=True)
class StoreConfig:
    """
    Key-value store location.

    The settings record is stored as one opaque JSON blob under `key`
    inside the JSON object file at `path`.
    """
    path: Path
    key: str


def load_config() -> StoreConfig:
    """Build the store configuration from application settings."""
    return StoreConfig(
        path=Path(settings.SETTINGS_STORE_PATH),
        key=settings.SETTINGS_STORE_KEY,
    )
