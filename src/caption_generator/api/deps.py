from __future__ import annotations

import os
from pathlib import Path

from ..config import Settings, load_settings

CONFIG_ENV = "CAPTION_GENERATOR_CONFIG"


def get_settings() -> Settings:
    raw = os.environ.get(CONFIG_ENV)
    return load_settings(Path(raw) if raw else None)
