from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "Pokeshelf"
    debug: bool = False

    pokeapi_url: str = "https://pokeapi.co/api/v2"
    user_agent: str = "Pokeshelf/1.0"

    # Discovery pagination
    page_size: int = 6
    request_timeout_seconds: float = 10.0
    max_retries: int = 2
    retry_base_delay_ms: int = 1000
    retry_max_delay_ms: int = 30000

    # Freshness and retention are independent windows
    stale_time_seconds: float = 5 * 60
    retention_seconds: float = 30 * 60
    gc_interval_seconds: float = 60
    refresh_on_stale: bool = True

    # Durable collection storage
    data_dir: Path = Path("data")
    collection_key: str = "pokemon_collection"


settings = Settings()


# =============================================================================
# CATALOG DEFAULTS
# =============================================================================

# Served when upstream has neither official artwork nor a default sprite
PLACEHOLDER_IMAGE = "/images/pokemon-placeholder.png"

# Colour for types missing from the type colour table
UNKNOWN_TYPE_COLOR = "#777777"
