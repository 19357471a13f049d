"""Application configuration."""
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from roofing_ivr.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Public URL the telephony platform calls back on
    server_base_url: Optional[str] = None

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    # Call sessions
    session_ttl_seconds: int = 6 * 60 * 60
    no_input_policy: Literal["advance", "reprompt"] = "advance"
    max_reprompts: int = 2
    strict_sessions: bool = False

    # Spoken script override (YAML)
    script_file: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    def require_base_url(self) -> str:
        """Return the callback base URL without a trailing slash."""
        if not self.server_base_url or not self.server_base_url.strip():
            raise ConfigurationError(
                "SERVER_BASE_URL is not set; the telephony platform needs a "
                "public address to call back on"
            )
        return self.server_base_url.strip().rstrip("/")


settings = Settings()
