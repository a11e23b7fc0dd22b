"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "ScrapeFlow"
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    database_url: str = "sqlite:///./scrapeflow.db"
    api_secret: str = ""
    encryption_key: str = "changeme"

    browser_headless: bool = True
    browser_viewport_width: int = 2560
    browser_viewport_height: int = 1440
    webhook_timeout_seconds: float = 30.0

    openai_model: str = "gpt-4o-mini"
    openai_base_url: str | None = None

    model_config = {"env_prefix": "SCRAPEFLOW_"}


settings = Settings()
