"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Centralised settings — credentials may be blank; callers fail when they need them."""

    # Database
    database_url: str = Field(...)

    # OpenAI-compatible completion service
    openai_api_key: str = Field("")
    openai_base_url: str = Field("https://api.openai.com/v1")
    openai_chat_model: str = Field("gpt-4.1-mini")
    openai_vision_model: str = Field("gpt-4o-mini")
    openai_timeout_seconds: float = Field(60.0)

    # LINE Messaging API
    line_channel_access_token: str = Field("")
    line_channel_secret: str = Field("")
    line_api_base: str = Field("https://api.line.me")

    # Make.com server-to-server access
    make_api_key: str = Field("")

    # Conversation
    history_window_hours: int = Field(36, ge=1)

    # Security
    allowed_origins: str = Field("*")

    # App
    app_env: str = Field("development")
    log_level: str = Field("INFO")

    # Derived
    @property
    def allowed_origins_list(self) -> list[str]:
        """Return ALLOWED_ORIGINS as a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()


settings = get_settings()
