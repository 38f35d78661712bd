"""Application settings loaded from environment variables and the settings file."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Literal

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://aipipe.org"
DEFAULT_MODEL = "openai/gpt-4o-mini"


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Querya configuration. Values come from QUERYA_* environment variables."""

    # Model provider
    provider: str = Field(default="aipipe")
    api_key: str = Field(default="")
    model: str = Field(default=DEFAULT_MODEL)
    max_tokens: int = Field(default=2000, ge=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    base_url: str = Field(default=DEFAULT_BASE_URL)

    # Agent loop
    max_turns: int = Field(default=5, ge=1)
    request_timeout: float = Field(default=60.0, gt=0)
    tool_timeout: float = Field(default=30.0, gt=0)
    # "native" keeps assistant tool_calls / tool results paired on the wire,
    # "flatten" folds tool results into system messages.
    tool_role_mode: Literal["native", "flatten"] = Field(default="native")

    # Storage
    auto_save: bool = Field(default=True)
    data_dir: Path = Field(default=Path("data"))

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="QUERYA_",
        env_file=_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def api_root(self) -> str:
        """Base URL without trailing slashes."""
        return self.base_url.rstrip("/")

    @property
    def conversations_path(self) -> Path:
        return self.data_dir / "conversations.json"

    @property
    def settings_path(self) -> Path:
        return self.data_dir / "settings.json"


def load_settings(path: Path, **overrides) -> Settings:
    """Build Settings with the values stored at *path* merged over the defaults.

    Unknown keys are ignored. A missing or unreadable file falls back to the
    defaults (plus environment) so a bad file never blocks startup.
    """
    stored: dict = {}
    if path.exists():
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(loaded, dict):
                stored = {k: v for k, v in loaded.items() if k in Settings.model_fields}
            else:
                logger.warning("Ignoring settings file %s: not a JSON object", path)
        except (OSError, json.JSONDecodeError):
            logger.warning("Could not read settings file %s, using defaults", path, exc_info=True)

    stored.update(overrides)
    try:
        return Settings(**stored)
    except ValidationError:
        logger.warning("Stored settings in %s are invalid, using defaults", path, exc_info=True)
        return Settings(**overrides)


def save_settings(current: Settings, path: Path) -> None:
    """Write *current* as a flat JSON object."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(current.model_dump_json(indent=2), encoding="utf-8")
