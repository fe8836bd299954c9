from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    telegram_bot_token: str

    # Webhook (optional: leave empty to use polling)
    # Set to a publicly reachable HTTPS URL when deploying to a server,
    # e.g. https://yourdomain.com/bot  (path is used as the listen path)
    # Telegram only allows ports: 80, 88, 443, 8443
    webhook_url: str = ""
    webhook_secret: str = ""   # random string; Telegram sends it back for verification
    webhook_port: int = 8443
    webhook_listen: str = "0.0.0.0"

    # Storage
    settings_path: str = "~/.content_remix/settings.json"
    users_config: str = "config/users.json"

    # AI requests: the completion client carries this timeout
    ai_timeout_seconds: float = Field(default=60.0, gt=0)

    # Rate limit
    rate_limit_window_seconds: int = Field(default=60, ge=1)
    rate_limit_ai_per_window: int = Field(default=6, ge=1)


settings = Settings()
