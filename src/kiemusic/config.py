"""Configuration management for kie-music."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Storage
    database_path: Path = Path("kie-music.db")

    # KIE API
    kie_api_key: str | None = None
    kie_api_base: str = "https://api.kie.ai/api/v1"
    kie_request_timeout: float = 30.0
    kie_model: str = "V5"
    # Required by the API but never called back: we poll instead
    kie_callback_url: str = "https://api.example.com/callback"

    # Polling
    poll_max_attempts: int = 120
    poll_interval_seconds: float = 5.0

    # Live updates
    sse_keepalive_seconds: float = 15.0
    sse_queue_size: int = 256

    def ensure_directories(self) -> None:
        """Create the database directory if it doesn't exist."""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()
