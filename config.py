import tomllib
import shutil
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv
import os

from utils.confidence import DEFAULT_CONFIDENCE_RULES
from utils.mastery import DEFAULT_MASTERY_RULES
from utils.sm2 import DEFAULT_SRS_RULES
from utils.sun_drops import DAILY_CAP
from utils.tree_health import DEFAULT_TREE_RULES

CONFIG_DIR = Path.home() / ".lingofriends"
CONFIG_PATH = CONFIG_DIR / "config.toml"
PROJECT_CONFIG_EXAMPLE = Path(__file__).parent / "config.toml"

# Environment variables that override a config key, as (section, key) -> name
ENV_OVERRIDES = {
    ("srs", "failure_ease_penalty"): "LINGO_FAILURE_EASE_PENALTY",
    ("srs", "max_interval_days"): "LINGO_MAX_INTERVAL_DAYS",
    ("tree", "decay_per_day"): "LINGO_DECAY_PER_DAY",
    ("tree", "dying_threshold"): "LINGO_DYING_THRESHOLD",
    ("tree", "lesson_health_restore"): "LINGO_LESSON_HEALTH_RESTORE",
    ("sun_drops", "daily_cap"): "LINGO_DAILY_CAP",
    ("store", "max_retries"): "LINGO_MAX_RETRIES",
    ("logging", "level"): "LINGO_LOG_LEVEL",
}

def _defaults() -> Dict[str, Dict[str, Any]]:
    return {
        "srs": dict(DEFAULT_SRS_RULES),
        "mastery": dict(DEFAULT_MASTERY_RULES),
        "confidence": dict(DEFAULT_CONFIDENCE_RULES),
        "tree": dict(DEFAULT_TREE_RULES),
        "sun_drops": {"daily_cap": DAILY_CAP},
        "store": {"max_retries": 3},
        "logging": {"level": "INFO"},
    }

def _coerce(value: Any, default: Any) -> Any:
    """Cast an override to the type of its default (env values arrive as strings)."""
    if isinstance(default, bool):
        return str(value).lower() == "true"
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return str(value)

def load_config() -> Dict[str, Any]:
    """Load config from ~/.lingofriends/config.toml, copy example if missing, load .env overrides."""
    load_dotenv()
    if not CONFIG_PATH.exists():
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        if PROJECT_CONFIG_EXAMPLE.exists():
            shutil.copy(PROJECT_CONFIG_EXAMPLE, CONFIG_PATH)
        else:
            CONFIG_PATH.write_text("", encoding="utf-8")
    with open(CONFIG_PATH, "rb") as f:
        raw = tomllib.load(f)

    config: Dict[str, Any] = {}
    for section, defaults in _defaults().items():
        file_section = raw.get(section, {})
        merged = {}
        for key, default in defaults.items():
            value = file_section.get(key, default)
            env_name = ENV_OVERRIDES.get((section, key))
            if env_name:
                value = os.getenv(env_name, value)
            merged[key] = _coerce(value, default)
        config[section] = merged
    return config

def get_config_value(section: str, key: str, default: Optional[Any] = None) -> Any:
    """Get nested config value, e.g., get_config_value('tree', 'decay_per_day')."""
    config = load_config()
    value = config.get(section, {}).get(key, default)
    return value
