"""
Configuration management for the flow editor.

Settings come from three layers, later ones winning:
1. Defaults in EditorConfig
2. config.json next to the executable/project root
3. Environment variables (FLOW_STORAGE_BACKEND, FLOW_SAVE_KEY, FLOW_DATA_DIR,
   FLOW_LOG_LEVEL, FLOW_PORT, FLOW_PATH_TYPE)
"""

import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from src.constants import DEFAULT_SAVE_KEY
from src.models import PathType

logger = logging.getLogger(__name__)

ENV_PREFIX = "FLOW_"
CONFIG_FILENAME = "config.json"
SLOT_DIRNAME = "db"


def app_dir() -> Path:
    """Project root, or the folder of the executable in a frozen build.

    Save slots and config.json live next to the executable, not inside the bundle.
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    return Path(__file__).parent.parent


def default_slot_dir() -> Path:
    return app_dir() / SLOT_DIRNAME


def default_config_path() -> Path:
    return app_dir() / CONFIG_FILENAME


@dataclass
class EditorConfig:
    storage_backend: str = "file"  # 'file' or 'memory'
    save_key: str = DEFAULT_SAVE_KEY
    data_dir: str = ""
    default_path_type: str = PathType.BEZIER.value
    default_animated: bool = False
    log_level: str = "INFO"
    port: int = 8080

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir) if self.data_dir else default_slot_dir()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load the raw settings dict from config.json ({} when absent or unreadable)."""
    config_path = config_path or default_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
                return data if isinstance(data, dict) else {}
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable config {config_path}: {e}")
            return {}
    return {}


def save_config(config: dict, config_path: Optional[Path] = None) -> None:
    """Save settings to config.json."""
    config_path = config_path or default_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def _convert(raw: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if isinstance(raw, str):
            return raw.strip().lower() in ("1", "true", "yes", "on")
        return bool(raw)
    if isinstance(default, int):
        return int(raw)
    return str(raw)


def get_editor_config(config_path: Optional[Path] = None, environ: Optional[Dict[str, str]] = None) -> EditorConfig:
    """
    Build the effective EditorConfig.

    Unknown keys in config.json are ignored. Values that cannot be converted
    fall back to the default with a warning.
    """
    environ = os.environ if environ is None else environ
    file_values = load_config(config_path)
    config = EditorConfig()

    for f in fields(EditorConfig):
        default = getattr(config, f.name)
        raw = file_values.get(f.name)
        env_raw = environ.get(ENV_PREFIX + f.name.upper())
        if env_raw is not None:
            raw = env_raw
        if raw is None:
            continue
        try:
            setattr(config, f.name, _convert(raw, default))
        except (TypeError, ValueError):
            logger.warning(f"Invalid value for {f.name}: {raw!r}; using {default!r}")

    # FLOW_PATH_TYPE is the short form used in .env files
    if environ.get(ENV_PREFIX + "PATH_TYPE"):
        config.default_path_type = environ[ENV_PREFIX + "PATH_TYPE"]
    try:
        PathType.parse(config.default_path_type)
    except ValueError as e:
        logger.warning(f"{e}; using {PathType.BEZIER.value}")
        config.default_path_type = PathType.BEZIER.value
    return config
