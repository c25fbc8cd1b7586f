"""
Configuration settings for Sentiment Wizard.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development.
"""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    # === Application ===
    APP_NAME: str = "Sentiment Wizard"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "WARNING"  # CLI output stays readable; -v raises to DEBUG
    LOG_FILE: Optional[Path] = None  # JSON lines, in addition to stderr
    ENVIRONMENT: str = "development"
    
    # === Ollama Endpoint ===
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_TIMEOUT: float = 10.0  # seconds, for tags/pull handshakes
    GENERATE_TIMEOUT: float = 120.0  # seconds, single-shot generation
    DEFAULT_MODEL: str = "gemma3:4b"
    
    # === Runtime Detection ===
    # Ordered: first binary answering --version wins
    RUNTIME_BINARY_PATHS: list[str] = [
        "/Applications/Ollama.app/Contents/Resources/ollama",
        "/opt/homebrew/bin/ollama",
        "/usr/local/bin/ollama",
        "/usr/bin/ollama",
        "/bin/ollama",
    ]
    VERSION_CHECK_TIMEOUT: float = 5.0
    
    # === Installation ===
    PACKAGE_MANAGER_NAME: str = "brew"
    PACKAGE_MANAGER_PATHS: list[str] = [
        "/opt/homebrew/bin/brew",
        "/usr/local/bin/brew",
    ]
    RUNTIME_PACKAGE_NAME: str = "ollama"
    INSTALLER_URL: str = "https://ollama.com/download/Ollama.dmg"
    INSTALLER_MIN_BYTES: int = 1024 * 1024  # 1 MiB, rejects truncated downloads
    INSTALLER_TIMEOUT: float = 300.0
    MANUAL_INSTALL_POLL_INTERVAL: float = 2.0
    MANUAL_INSTALL_TIMEOUT: float = 600.0  # 10 minutes
    
    # === Server Startup ===
    SERVER_READY_TIMEOUT: float = 10.0
    SERVER_POLL_INTERVAL: float = 0.5
    SERVER_STOP_GRACE: float = 5.0
    
    # === File Import ===
    PREVIEW_ROWS: int = 5
    
    # === Preferences ===
    PREFERENCES_PATH: Path = Path.home() / ".config" / "sentiment-wizard" / "preferences.json"
    
    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True
    METRICS_PORT: Optional[int] = None  # unset: metrics are collected but not served


# Global settings instance
settings = Settings()
