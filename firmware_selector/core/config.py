"""
Application settings.

Settings are persisted at ``<DATA_DIR>/settings.json``. The data directory is
taken from the ``FIRMWARE_SELECTOR_DATA_DIR`` environment variable and falls
back to ``<repo root>/data``.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DATA_ROOT_ENV_VAR = "FIRMWARE_SELECTOR_DATA_DIR"
_REPO_ROOT = Path(__file__).resolve().parents[2]
_DEFAULT_DATA_DIR = _REPO_ROOT / "data"


class Settings(BaseModel):
    """
    Top-level configuration for the selector.
    Persisted at: <DATA_DIR>/settings.json
    """

    brand_name: str = Field(
        default="OpenWrt",
        description="Brand shown by presentation layers.",
    )
    image_url: str = Field(
        default="https://downloads.openwrt.org",
        description="Base URL of the image/package download server.",
    )
    apk_versions: List[str] = Field(
        default_factory=lambda: ["SNAPSHOT"],
        description="Firmware versions whose feeds publish binary packages.adb indexes.",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        ge=1,
        description="Timeout for each feed or profile HTTP request.",
    )


def get_data_dir() -> Path:
    """
    Determine the data directory path.

    Priority:
    1. Environment variable FIRMWARE_SELECTOR_DATA_DIR
    2. '<repo root>/data'
    """
    env_path = os.environ.get(DATA_ROOT_ENV_VAR)
    if env_path:
        d = Path(env_path).expanduser()
    else:
        d = _DEFAULT_DATA_DIR
    d.mkdir(parents=True, exist_ok=True)
    return d


def load_settings(data_dir: Optional[Path] = None) -> Settings:
    """
    Load settings.json, merging with defaults for any missing fields,
    and write it back so any new fields are persisted.
    """
    path = (data_dir or get_data_dir()) / "settings.json"
    if path.exists():
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            settings = Settings(**raw)
        except Exception as e:
            # If parsing fails, fall back to defaults and overwrite file.
            logger.warning(f"Ignoring unreadable settings file {path}: {e}")
            settings = Settings()
    else:
        settings = Settings()

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(settings.model_dump_json(indent=2), encoding="utf-8")
    return settings
