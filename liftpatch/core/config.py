"""Centralized configuration loading for LiftPatch.

Settings come from a config.json file (``./config.json`` unless
``LIFTPATCH_CONFIG`` points elsewhere), with environment variable fallbacks
and caller-supplied defaults.

Example config.json::

    {
      "openai": {"api_key": "sk-...", "model": "gpt-4o-mini", "temperature": 0.6},
      "llm": {"timeout_seconds": 30.0, "max_retries": 2},
      "supabase": {"url": "https://xyz.supabase.co", "key": "..."},
      "store": {"path": ".liftpatch-programs.json"}
    }
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

DEFAULT_CONFIG_PATH = "config.json"


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from JSON file.

    Returns empty dict if file doesn't exist or is invalid.

    Args:
        config_path: Path to config file (default: $LIFTPATCH_CONFIG or "config.json")

    Returns:
        Configuration dictionary, or empty dict if file not found/invalid
    """
    if config_path is None:
        config_path = os.environ.get("LIFTPATCH_CONFIG", DEFAULT_CONFIG_PATH)
    path = Path(config_path)

    if not path.exists():
        return {}

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError):
        return {}
    return data if isinstance(data, dict) else {}


def get_config_value(
    keys: List[str], default: Any = None, config: Optional[Dict[str, Any]] = None
) -> Any:
    """Get nested configuration value with fallback to environment variable.

    Keys are traversed in order, e.g. ``["openai", "api_key"]``. When the file
    has no value, the environment variable named by upper-casing and joining
    the keys with underscores is checked (``OPENAI_API_KEY``).

    Args:
        keys: List of keys to traverse (e.g., ["openai", "api_key"])
        default: Default value if key not found
        config: Optional config dict (uses load_config() if not provided)

    Returns:
        Configuration value, or default if not found
    """
    if config is None:
        config = load_config()

    value: Any = config
    for key in keys:
        if isinstance(value, dict):
            value = value.get(key)
            if value is None:
                break
        else:
            value = None
            break

    if value is not None:
        return value

    env_key = "_".join(k.upper() for k in keys)
    env_value = os.environ.get(env_key)
    if env_value is not None:
        return env_value

    return default


def get_float(keys: List[str], default: float, config: Optional[Dict[str, Any]] = None) -> float:
    """Numeric config lookup; environment values arrive as strings."""
    value = get_config_value(keys, default=default, config=config)
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def get_int(keys: List[str], default: int, config: Optional[Dict[str, Any]] = None) -> int:
    value = get_config_value(keys, default=default, config=config)
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
