"""
Application Configuration — Pydantic Settings

Centralized configuration management using environment variables.
Loads from .env file automatically with sensible defaults.

Note: these are *process* settings. The user-facing dispenser settings
(threshold, speed, volume) live in dispenser.engine.schemas and are
persisted through dispenser.storage.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    
    Priority: Environment variables > .env file > defaults
    """
    
    # === API Configuration ===
    PROJECT_NAME: str = "Smart Water Dispenser"
    
    # === CORS Configuration ===
    CORS_ORIGINS: list[str] = [
        "http://localhost:8081",
        "http://localhost:19006",
        "http://127.0.0.1:8081",
        "http://127.0.0.1:19006",
    ]
    
    # === Settings Persistence ===
    SETTINGS_STORE_PATH: str = "data/dispenser_store.json"
    SETTINGS_STORE_KEY: str = "water_dispenser_settings"
    
    # === Notifications ===
    NOTIFICATIONS_ENABLED: bool = True
    
    # === Logging ===
    LOG_LEVEL: str = "INFO"
    
    # === Environment ===
    ENVIRONMENT: str = "local"  # local, development, production
    
    # === Settings Configuration ===
    model_config = SettingsConfigDict(
        env_file=("dispenser/.env", ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Singleton instance
settings = Settings()
