"""
Centralized configuration loader.

Non-sensitive settings (thresholds, weights, vocabulary) come from
design_extractor.toml at the repository root. The file is required and
keys have no fallback defaults: a missing key is a deployment error.

Environment (.env is loaded first):
    DESIGN_EXTRACTOR_CONFIG_PATH  alternative TOML file
    DESIGN_EXTRACTOR_MODEL_PATH   learned-detector model file (optional)
"""

import copy
import os
import tomllib
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

load_dotenv()

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "design_extractor.toml"


def _resolve_config_path() -> Path:
    return Path(os.environ.get("DESIGN_EXTRACTOR_CONFIG_PATH", DEFAULT_CONFIG_PATH))


def load_config(path: Path) -> Dict[str, Any]:
    """Parse a TOML configuration file. Raises RuntimeError if it does not exist."""
    if not path.exists():
        raise RuntimeError(f"Configuration file not found: {path}")
    with open(path, "rb") as f:
        return tomllib.load(f)


_CONFIG_PATH = _resolve_config_path()
_CONFIG = load_config(_CONFIG_PATH)


def config_path() -> Path:
    """Path of the configuration file currently loaded."""
    return _CONFIG_PATH


def lookup(config: Dict[str, Any], *keys: str) -> Any:
    """Traverse a nested config mapping. Raises RuntimeError naming the dotted key."""
    current = config
    path = ".".join(keys)
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            raise RuntimeError(f"Missing required config key '{path}'")
        current = current[key]
    return current


def get(*keys: str) -> Any:
    """Read a value from design_extractor.toml.

    Example: get("heuristic", "edge", "confidence") -> 0.8
    """
    return lookup(_CONFIG, *keys)


def get_section(*keys: str) -> Dict[str, Any]:
    """Return a deep copy of a TOML table, safe for callers to mutate."""
    section = lookup(_CONFIG, *keys)
    if not isinstance(section, dict):
        raise RuntimeError(f"Config key '{'.'.join(keys)}' is not a table")
    return copy.deepcopy(section)


def require_env(name: str) -> str:
    """Get a required environment variable. Raises RuntimeError if missing or empty."""
    value = os.environ.get(name)
    if not value:
        raise RuntimeError(
            f"Required environment variable '{name}' is not set. "
            f"Add it to your .env file."
        )
    return value


def get_env(name: str) -> str | None:
    """Get an optional environment variable (returns None if not set)."""
    return os.environ.get(name)
