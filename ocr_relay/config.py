"""All settings, loaded from the environment and the .env file."""
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    app_name: str = "OCR Relay"
    port: int = 3000
    static_dir: str = str(Path(__file__).resolve().parent / "static")
    cors_origins: list[str] = ["*"]
    max_body_size_mb: int = 50

    # Upstream vision-chat API
    upstream_base_url: str = "https://chat.qwenlm.ai"
    upstream_upload_path: str = "/api/v1/files/"
    upstream_chat_path: str = "/api/chat/completions"
    upstream_model: str = "qwen-max-latest"
    upstream_chat_type: str = "t2t"
    user_agent: str = "OCR-Relay/1.0"
    upload_timeout_seconds: float = 60
    chat_timeout_seconds: float = 120
    connect_timeout_seconds: float = 10
    http_max_connections: int = 50
    http_max_keepalive: int = 20

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_default: str = "120/minute"
    rate_limit_recognize: str = "30/minute"
    rate_limit_storage_uri: str = "memory://"

    @property
    def upload_url(self) -> str:
        return self.upstream_base_url.rstrip("/") + self.upstream_upload_path

    @property
    def chat_url(self) -> str:
        return self.upstream_base_url.rstrip("/") + self.upstream_chat_path

    @property
    def max_body_bytes(self) -> int:
        return self.max_body_size_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
