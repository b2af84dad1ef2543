"""Runtime settings read from the environment or a local ``.env`` file."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from betquiz_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BETQUIZ_", env_file=".env", extra="ignore")

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    # Enables persistence of ZIP-imported questions, e.g. postgresql+psycopg://...
    database_url: str | None = None
    cors_origins: list[str] = ["*"]


def get_settings() -> Settings:
    return Settings()
