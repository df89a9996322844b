from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration for the messenger server.
    Read from environment variables (DATABASE_URL, PORT, FRONTEND_URL, ...).
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Absent means messages are kept in memory only
    database_url: Optional[str] = None

    host: str = "0.0.0.0"
    port: int = 3000

    frontend_url: str = "*"

    log_level: str = "INFO"
    sql_echo: bool = False

    @field_validator("database_url")
    @classmethod
    def use_async_driver(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        # Hosting providers hand out plain postgres:// URLs
        for prefix in ("postgres://", "postgresql://"):
            if value.startswith(prefix):
                return "postgresql+asyncpg://" + value[len(prefix):]
        return value

    @property
    def allowed_origins(self) -> list[str]:
        return [self.frontend_url] if self.frontend_url != "*" else ["*"]
