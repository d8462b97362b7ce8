"""Configuration loader: scancrop.json overrides, then SCANCROP_* environment variables."""

import json
import logging
import os
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Optional

from scancrop.config import EditorConfig

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "scancrop.json"
ENV_PREFIX = "SCANCROP_"

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _coerce(name: str, raw: Any, default: Any) -> Any:
    """Convert a raw setting to the type of the field's default."""
    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ValueError(f"Setting {name}: expected a boolean, got {raw!r}")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return str(raw)


def load_config(settings_path: Optional[Path] = None) -> EditorConfig:
    """Build an EditorConfig from defaults, a JSON file and the environment.

    Priority: environment variables > settings file > defaults. Keys in the
    file use field names (``detect_min_area_ratio``); environment variables
    use the upper-cased name with the ``SCANCROP_`` prefix
    (``SCANCROP_DETECT_MIN_AREA_RATIO``).

    Args:
        settings_path: Path to a JSON settings file. Defaults to
            ``scancrop.json`` in the working directory.

    Returns:
        EditorConfig with overrides applied.

    Raises:
        ValueError: If a value cannot be converted to the field's type.
    """
    path = settings_path or Path.cwd() / SETTINGS_FILENAME
    data: Dict[str, Any] = {}

    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            logger.debug(f"Loaded settings from {path}")
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read settings at {path}: {e}")
            data = {}
        if not isinstance(data, dict):
            logger.warning(f"Settings at {path} is not a JSON object, ignoring")
            data = {}
    elif settings_path is not None:
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    config = EditorConfig()
    for f in fields(EditorConfig):
        default = getattr(config, f.name)
        raw = data.get(f.name)

        env_value = os.getenv(ENV_PREFIX + f.name.upper(), "")
        if env_value.strip():
            raw = env_value.strip()

        if raw is not None:
            setattr(config, f.name, _coerce(f.name, raw, default))
            logger.debug(f"Setting {f.name} = {getattr(config, f.name)!r}")

    unknown = set(data) - {f.name for f in fields(EditorConfig)}
    if unknown:
        logger.warning(f"Ignoring unknown settings: {', '.join(sorted(unknown))}")

    return config
