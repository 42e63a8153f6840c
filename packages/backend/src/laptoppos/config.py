"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with LAPTOPPOS_ prefix.
No YAML files, no file-based config — just env vars (12-factor app style).

Learn: Both halves of the realtime layer read from here. The server uses
host/port/redis, the client uses the ws_* retry policy and toast duration.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via LAPTOPPOS_* env vars."""

    # Redis (cross-process broadcast relay)
    redis_url: str = "redis://localhost:6379/0"
    redis_channel: str = "laptoppos:events"

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 5000

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:5000",
    ]

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Realtime client
    api_url: str = "http://localhost:5000"
    ws_reconnect_attempts: int = 5
    ws_reconnect_interval_seconds: float = 3.0  # fixed, not exponential
    toast_duration_ms: int = 3000

    model_config = {"env_prefix": "LAPTOPPOS_"}

    @model_validator(mode="after")
    def validate_reconnect_policy(self):
        """Reject retry settings that would spin or never reconnect."""
        if self.ws_reconnect_attempts < 0:
            raise ValueError("LAPTOPPOS_WS_RECONNECT_ATTEMPTS must be >= 0")
        if self.ws_reconnect_interval_seconds <= 0:
            raise ValueError(
                "LAPTOPPOS_WS_RECONNECT_INTERVAL_SECONDS must be positive"
            )
        return self


# Singleton, import this everywhere
settings = Settings()
