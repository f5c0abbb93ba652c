"""Configuration file handling for cleanslim."""

import json
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "CLEANSLIM_CONFIG_DIR"
DEFAULT_CONFIG_DIR = "~/.cleanslim"
CONFIG_FILENAME = "config.json"


class Settings(BaseModel):
    """User settings stored in the configuration file."""

    min_clean_display_seconds: float = Field(
        0.0,
        ge=0.0,
        description="Minimum time a clean stays visible before completion is announced",
    )
    scan_step_delay: float = Field(
        0.0,
        ge=0.0,
        description="Pause after each scan progress event, for smoother progress displays",
    )
    max_clean_workers: Optional[int] = Field(
        None,
        ge=1,
        description="Cap on concurrent clean tasks (default: one per selected category)",
    )
    log_level: str = Field("WARNING", description="Logging level name")
    credit_policy: Literal["pre_scan", "remeasure"] = Field(
        "pre_scan",
        description="How freed bytes are credited after a clean",
    )


def get_config_file() -> Path:
    """Location of the configuration file, honouring CLEANSLIM_CONFIG_DIR."""
    config_dir = os.environ.get(CONFIG_DIR_ENV) or DEFAULT_CONFIG_DIR
    return Path(os.path.expanduser(config_dir)) / CONFIG_FILENAME


def load_config_data(config_file: Path | None = None) -> dict:
    """Load the raw configuration mapping; empty on a missing or unreadable file."""
    config_file = config_file or get_config_file()
    if not config_file.exists():
        return {}

    try:
        with open(config_file) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Ignoring unreadable config file {config_file}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Ignoring config file {config_file}: expected a JSON object")
        return {}
    return data


def save_config_data(data: dict, config_file: Path | None = None) -> bool:
    """Write the raw configuration mapping to disk."""
    config_file = config_file or get_config_file()
    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, "w") as f:
            json.dump(data, f, indent=2)
        return True
    except OSError as e:
        logger.warning(f"Could not write config file {config_file}: {e}")
        return False


def load_settings(config_file: Path | None = None) -> Settings:
    """
    Load settings from the configuration file.

    Missing keys take their defaults; an invalid settings block is ignored.
    """
    data = load_config_data(config_file)
    try:
        return Settings(**data.get("settings", {}))
    except (ValidationError, TypeError) as e:
        logger.warning(f"Invalid settings, using defaults: {e}")
        return Settings()


def save_settings(settings: Settings, config_file: Path | None = None) -> bool:
    """Save settings, preserving the rest of the configuration file."""
    data = load_config_data(config_file)
    data["settings"] = settings.model_dump()
    return save_config_data(data, config_file)
