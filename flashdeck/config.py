"""
Centralized configuration for flashdeck, loaded from FLASHCARD_* environment
variables or a .env file.
"""
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_DESIRED_RETENTION, DEFAULT_FETCH_TIMEOUT


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FLASHCARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Root for relative deck ids and for uploaded decks
    # (FLASHCARD_DATA_DIR). Defaults to the working directory.
    data_dir: Path = Field(default_factory=Path.cwd)

    # Seconds to wait for a remote extension deck.
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT

    # Refuse to overwrite an activity file another process changed.
    detect_conflicts: bool = False

    desired_retention: float = Field(
        default=DEFAULT_DESIRED_RETENTION, gt=0, lt=1
    )


def get_settings() -> Settings:
    """Read settings fresh from the environment."""
    return Settings()
