from pydantic_settings import BaseSettings
from functools import lru_cache

from core.config.constants import CONSTANTS


class Settings(BaseSettings):
    # App settings
    app_name: str = "Sonar Trading Lab"
    cors_origins: list[str] = ["*"]

    # Polygon market data
    polygon_api_key: str = ""
    polygon_base_url: str = CONSTANTS.transport.POLYGON_BASE_URL

    # LLM API Keys
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    perplexity_api_key: str = ""

    # Chart settings
    chart_timezone: str = "UTC"
    # Coarse timeframes query a fixed historical day instead of the user range
    market_fixed_coarse_window: bool = True

    # Market status poller
    market_status_poll_enabled: bool = True

    class Config:
        # Load from .env.local first (higher priority), then .env
        env_file = (".env", ".env.local")
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
