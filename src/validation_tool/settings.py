from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .config import CONFIG_FILE

ENV_PREFIX = "VALIDATOR_"


class Settings(BaseSettings):
    """Runtime settings for the ASGI entry point, sourced from the environment."""

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, env_file=".env", extra="ignore")

    config_path: Path = CONFIG_FILE
    scenarios: str = ""
    repository: Path | None = None
    gui: bool | None = None

    @property
    def scenario_paths(self) -> list[Path]:
        return [Path(item.strip()) for item in self.scenarios.split(",") if item.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["ENV_PREFIX", "Settings", "get_settings"]
