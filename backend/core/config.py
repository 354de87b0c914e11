from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_PATH = BASE_DIR / ".env"

# Load environment variables from .env if present
load_dotenv(ENV_PATH)


class Settings(BaseSettings):
    # Fields are read from the upper-cased env var of the same name, e.g. CALC_FEE_RATE_PCT.
    model_config = SettingsConfigDict(
        env_file=ENV_PATH,
        case_sensitive=False,
        extra="ignore",
    )

    app_env: str = Field("development")
    app_host: str = Field("127.0.0.1")
    app_port: int = Field(8000)
    log_level: str = Field("INFO")
    cors_allow_origins: str = Field("*")

    calc_fee_rate_pct: float = Field(0.04, ge=0)
    calc_enforce_input_domain: bool = Field(True)

    def cors_origins(self) -> List[str]:
        """Comma separated CORS_ALLOW_ORIGINS as a list; empty falls back to '*'."""
        origins = [item.strip() for item in (self.cors_allow_origins or "").split(",") if item.strip()]
        return origins or ["*"]


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


def get_log_level(default: Optional[str] = None) -> str:
    """Convenience accessor for log level with optional override."""
    settings = get_settings()
    return settings.log_level or (default or "INFO")
