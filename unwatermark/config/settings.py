from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    engine: str = "example"
    engine_timeout_seconds: float | None = None

    accepted_media_types: list[str] = ["image/jpeg", "image/png", "image/webp"]
    max_file_size_bytes: int = 20 * 1024 * 1024
    batch_chunk_size: int = 3

    asset_host: str = "googleusercontent.com"
    dom_debounce_seconds: float = 0.1
    fetch_timeout_seconds: int = 30

    output_prefix: str = "unwatermarked_"
    output_dir: str = "output"
