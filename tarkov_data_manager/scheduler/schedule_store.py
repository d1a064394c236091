"""
Persisted schedule overrides.

``settings/crons.json`` maps job names to cron expressions, or to null for
a job that was explicitly unscheduled. Only entries that differ from the
built-in defaults are stored.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

from tarkov_data_manager.config.settings import Config

logger = logging.getLogger(__name__)


def schedule_file() -> Path:
    return Config.path('settings', 'crons.json')


def load_overrides(path: Optional[Path] = None) -> Dict[str, Optional[str]]:
    """Stored overrides; empty when the file is missing or unusable."""
    path = Path(path or schedule_file())
    try:
        with open(path, 'r', encoding='utf-8') as f:
            overrides = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error parsing custom cron jobs in {path}: {e}")
        return {}
    if not isinstance(overrides, dict):
        logger.error(f"Custom cron jobs in {path} must be an object")
        return {}

    valid = {}
    for name, cron in overrides.items():
        if cron is not None and not isinstance(cron, str):
            logger.error(f"Ignoring custom cron for {name} in {path}: {cron!r} is not a cron expression")
            continue
        valid[name] = cron
    return valid


def save_overrides(overrides: Dict[str, Optional[str]], path: Optional[Path] = None):
    path = Path(path or schedule_file())
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.tmp")
    with open(tmp_path, 'w', encoding='utf-8') as f:
        json.dump(overrides, f, indent=4)
    os.replace(tmp_path, path)
