from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Telegram
    telegram_bot_token: str
    telegram_webhook_secret: str = ""  # Optional: for webhook verification
    webhook_url: str = ""  # Empty: polling mode
    port: int = 3000

    # Environment
    environment: str = "development"

    # Session encryption (falls back to the bot token when empty)
    encryption_key: str = ""

    # Endpoints API
    endpoints_api_url: str = "https://endpoints.work"
    endpoints_web_url: str = "https://endpoints.work"
    endpoints_api_timeout: float = 60.0

    # Session storage: "memory", "sqlite" or "supabase"
    session_backend: str = "sqlite"
    database_path: str = "./data/bot.sqlite"

    # Supabase (only for session_backend = "supabase")
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    sessions_table: str = "bot_kv"

    # Uploads
    max_file_size: int = 10 * 1024 * 1024  # 10MB, matches Endpoints limit
    pending_file_ttl_seconds: int = 600
    pending_file_max_entries: int = 200
    decision_mime_types: list[str] = [
        "text/csv",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
