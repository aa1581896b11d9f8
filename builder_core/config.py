"""
Settings for the builder core and backend.

Values come from the environment (prefix `BUILDER_`) or a `.env` file, e.g.
`BUILDER_MAX_HISTORY=100` or `BUILDER_CATALOG_PATH=config/components.json`.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .history import DEFAULT_MAX_HISTORY
from .persistence import DEFAULT_SAVE_DELAY, DEFAULT_STORAGE_KEY
from .validation import DEFAULT_BLOCK_SIZE, DEFAULT_MAX_DISTANCE, DEFAULT_MAX_SUGGESTIONS


class BuilderSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BUILDER_",
        env_file=".env",
        extra="ignore",
    )

    title: str = "Data Platform Builder API"
    log_level: str = "INFO"

    # History
    max_history: int = Field(default=DEFAULT_MAX_HISTORY, ge=1)

    # Persistence
    save_delay_seconds: float = Field(default=DEFAULT_SAVE_DELAY, ge=0)
    storage_dir: Path = Path("data")
    storage_key: str = DEFAULT_STORAGE_KEY

    # Validation
    catalog_path: Optional[Path] = None
    validate_layout: bool = True
    suggestion_max_distance: int = Field(default=DEFAULT_MAX_DISTANCE, ge=0)
    max_suggestions: int = Field(default=DEFAULT_MAX_SUGGESTIONS, ge=1)
    block_width: float = Field(default=DEFAULT_BLOCK_SIZE[0], gt=0)
    block_height: float = Field(default=DEFAULT_BLOCK_SIZE[1], gt=0)
