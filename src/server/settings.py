from __future__ import annotations
import json
from pathlib import Path
from typing import Dict


SETTINGS_PATH: Path | None = None


def init_settings(path: Path) -> None:
    global SETTINGS_PATH
    SETTINGS_PATH = path
    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        save_settings(default_settings())


def default_settings() -> Dict:
    return {
        # Empty values fall back to FRAMER_* environment variables
        "framer_project_url": "",
        "framer_api_key": "",
        "framer_api_base": "",
        "use_12_hour_time_default": False,
        "prune_missing_default": False,
    }


def get_settings() -> Dict:
    assert SETTINGS_PATH is not None
    base = default_settings()
    try:
        data = json.loads(SETTINGS_PATH.read_text())
    except (OSError, ValueError):
        return base
    if isinstance(data, dict):
        base.update(data)
    return base


def save_settings(data: Dict) -> None:
    assert SETTINGS_PATH is not None
    SETTINGS_PATH.write_text(json.dumps(data, indent=2))
