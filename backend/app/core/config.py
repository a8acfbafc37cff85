import json
import os

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "GiFiTi API"
    environment: str = "local"
    cors_origin_raw: str = ""  # Comma-separated or JSON array

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "allow",
    }

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from raw string."""
        raw = os.getenv("CORS_ORIGIN", self.cors_origin_raw).strip()
        if not raw:
            return ["http://localhost:5173", "http://127.0.0.1:5173"]
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
                if isinstance(parsed, list):
                    return [str(item).strip() for item in parsed if str(item).strip()]
            except ValueError:
                pass
        return [item.strip() for item in raw.split(",") if item.strip()]

    # Database: sqlite+aiosqlite:///./gifiti.db (dev) | postgresql+asyncpg://... (prod)
    database_url: str = "sqlite+aiosqlite:///./gifiti.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_recycle: int = 1800
    db_pool_timeout: int = 30

    access_token_expire_minutes: int = 60 * 24 * 7
    # SECURITY: override via JWT_SECRET_KEY env var; non-local environments refuse the default
    jwt_secret_key: str = "CHANGE_ME"
    jwt_algorithm: str = "HS256"

    rate_limit_enabled: bool = True
    rate_limit_requests: int = 10
    rate_limit_window_seconds: int = 60
    rate_limit_login_requests: int = 5

    max_wishes_per_user: int = 10
    birthday_days_ahead: int = 30
    default_page_size: int = 20

    log_level: str = "INFO"
    log_file: str = ""


settings = Settings()
