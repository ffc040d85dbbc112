from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional

# Application settings using pydantic-settings for structured configuration

class Settings(BaseSettings):
    # --- App ---
    app_name: str = "Word Vector Lookup"
    app_env: str = "development"          # e.g., development / staging / production
    debug: bool = True

    # --- Source ---
    # whitespace separated "word v1 v2 ... vn" lines
    vector_file: Optional[str] = None

    # --- VecStore (hash table over the full corpus) ---
    case_sensitive: bool = True
    retention_fraction: float = Field(default=1.0, gt=0)
    # entries per bucket; bucket count = max(1, entries // load factor)
    bucket_load_factor: int = Field(default=20, ge=1)

    # --- VecSimTable (precomputed pairs over a small subset) ---
    sim_table_pattern: Optional[str] = None  # full-match regex, wins over the fraction
    sim_table_fraction: float = Field(default=0.1, gt=0)

    # --- Query defaults ---
    default_k: int = Field(default=3, ge=1)
    default_radius: float = Field(default=0.1, ge=0)

    # pydantic v2 / pydantic-settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",     # auto-load from your .env
        case_sensitive=False,  # .env keys can be upper/lower
        extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    """Cache settings so we don’t re-parse .env on every request."""
    return Settings()
