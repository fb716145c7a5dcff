"""Load settings and env configuration."""
from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from jobmerge.log import get_logger

log = get_logger(__name__)

load_dotenv()

CONFIG_DIR: Path = Path(__file__).resolve().parent.parent / "config"
SETTINGS_PATH: Path = CONFIG_DIR / "settings.yaml"

DEFAULTS: dict[str, Any] = {
    "matching": {
        "weights": {"skills": 0.45, "technologies": 0.30, "experience": 0.25},
        "relevance_threshold": 40.0,
        "max_corpus": 500,
    },
    "scraping": {
        "poll_interval": 2.0,
        "max_wait": 120.0,
        "default_max_jobs": 10,
        "estimated_time": "30-60 seconds",
    },
    "search": {
        "default_limit": 20,
        "max_limit": 100,
    },
    "api": {
        "base_url": "http://localhost:3001/api/v1",
        "timeout": 15.0,
        "health_timeout": 5.0,
    },
}

# env var -> (section, key, cast)
_ENV_OVERRIDES: dict[str, tuple[str, str, type]] = {
    "JOBMERGE_RELEVANCE_THRESHOLD": ("matching", "relevance_threshold", float),
    "JOBMERGE_POLL_INTERVAL": ("scraping", "poll_interval", float),
    "JOBMERGE_MAX_WAIT": ("scraping", "max_wait", float),
    "JOBMERGE_API_URL": ("api", "base_url", str),
}


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_settings(path: Path | None = None) -> dict[str, Any]:
    """Defaults, then ``config/settings.yaml`` (if present), then env overrides."""
    settings = copy.deepcopy(DEFAULTS)
    path = path or SETTINGS_PATH
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path.name} must contain a mapping, got {type(data).__name__}")
        _merge(settings, data)

    for env_key, (section, key, cast) in _ENV_OVERRIDES.items():
        raw = get_env(env_key)
        if not raw:
            continue
        try:
            settings[section][key] = cast(raw)
        except ValueError:
            log.warning("Ignoring %s=%r (expected %s)", env_key, raw, cast.__name__)

    weights = settings["matching"]["weights"]
    total = sum(float(w) for w in weights.values())
    if total <= 0:
        raise ValueError("matching.weights must sum to a positive number")
    return settings


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()
