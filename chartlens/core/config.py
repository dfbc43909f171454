"""Application configuration settings."""
from pydantic_settings import BaseSettings
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Settings loaded from CHARTLENS_* environment variables."""

    # Chart geometry (render target handed to the mapper)
    chart_width: int = 1280
    chart_height: int = 720
    price_padding_ratio: float = 0.05   # Price axis padding on each side

    # Model coordinate contract: 0..scale, top-left origin
    normalized_coord_scale: float = 1000.0

    # Decision defaults
    default_leverage: float = 1.0

    # Optional YAML file replacing the built-in synonym tables
    vocabulary_path: Optional[str] = None

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "CHARTLENS_"
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
