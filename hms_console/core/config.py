from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from project root so it loads regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Remote hospital API
    api_base_url: str = "http://localhost:5000/api"
    # None means wait indefinitely; slow responses are discarded as stale instead
    request_timeout_seconds: float | None = None

    # Durable client state (bearer token lives under token_storage_key)
    storage_url: str = "sqlite:///./hms_console.db"
    token_storage_key: str = "token"

    # Reference lists for the booking form
    directory_page_limit: int = 100
    # Booking forms kept open at once; the oldest is evicted beyond this
    max_open_forms: int = 20

    # Console server
    console_host: str = "127.0.0.1"
    console_port: int = 8000

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Env
    env: str = "development"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
