"""
Configuration settings for the Tailnet Node Monitor
"""

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings
from typing import List, Optional

from node_monitor.core.exceptions import ConfigurationError

REQUIRED_SETTINGS = [
    "telegram_bot_token",
    "telegram_chat_id",
    "tailnet_name",
    "tailscale_oauth_client_id",
    "tailscale_oauth_client_secret",
]

class Settings(BaseSettings):
    """Application settings"""

    # Database
    db_host: str = "postgres"
    db_port: str = "5432"
    db_name: str = "node_monitor_db"
    db_user: str = "monitor_user"
    db_password: str = "monitor_password"
    database_url: str = ""

    # Status store backend: "database" or "memory"
    store_backend: str = "database"

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False
    api_access_token: Optional[str] = None

    # Telegram
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    telegram_api_base_url: str = "https://api.telegram.org"

    # Tailscale
    tailnet_name: Optional[str] = None
    tailscale_oauth_client_id: Optional[str] = None
    tailscale_oauth_client_secret: Optional[str] = None
    tailscale_api_base_url: str = "https://api.tailscale.com"
    token_kv_key: str = "tailscale_oauth_token"
    token_expiry_buffer_seconds: int = Field(300, ge=0)

    # Monitoring
    down_threshold_minutes: int = Field(15, ge=0)
    reminder_interval_minutes: int = Field(240, ge=1)
    monitor_tags: str = ""  # comma-separated, empty = monitor every node
    check_interval_seconds: int = Field(300, ge=1)
    http_timeout_seconds: int = Field(30, ge=1)

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Build database_url from components unless given explicitly
        if not self.database_url:
            self.database_url = f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def monitor_tag_list(self) -> List[str]:
        """MONITOR_TAGS parsed into trimmed, non-empty tags"""
        return [tag.strip() for tag in self.monitor_tags.split(",") if tag.strip()]

    def missing_required(self) -> List[str]:
        return [name.upper() for name in REQUIRED_SETTINGS if not getattr(self, name)]

def load_settings(**overrides) -> Settings:
    """
    Build a fresh Settings instance and check that every required key is set.

    Raises:
        ConfigurationError: if a required key is missing or a value is invalid
    """
    try:
        loaded = Settings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    missing = loaded.missing_required()
    if missing:
        raise ConfigurationError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )
    return loaded

# Global settings instance
settings = Settings()
