"""Engine configuration loaded from ``calcengine.yaml``."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from calcengine.fn_date import DEFAULT_DATE_FORMATS

CONFIG_FILENAME = "calcengine.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "language": None,  # "en", "fr" or None for untranslated tokens
    "translations": {},  # extra token -> translation entries
    "date_types": False,
    "date_formats": dict(DEFAULT_DATE_FORMATS),
    "log_dir": None,  # events are discarded when unset
    "logging_fsync": False,
}


def _flatten_logging_block(user_config: dict[str, Any]) -> dict[str, Any]:
    """Flatten a nested ``logging:`` block into flat config keys.

    Supports::

        logging:
          dir: .calcengine/logs
          fsync: true

    Maps to ``log_dir`` and ``logging_fsync``.
    """
    block = user_config.pop("logging", None)
    if not isinstance(block, dict):
        return user_config
    if "dir" in block:
        user_config["log_dir"] = block["dir"]
    if "fsync" in block:
        user_config["logging_fsync"] = block["fsync"]
    return user_config


def load_config(path: Path | str | None = None) -> dict[str, Any]:
    """Load configuration, with defaults.

    Args:
        path: A YAML file, or a directory containing ``calcengine.yaml``.
            ``None`` returns the defaults.

    Returns:
        Merged configuration dict.  Unknown keys are kept.

    Raises:
        FileNotFoundError: If *path* names a file that does not exist.
        ValueError: If the file does not hold a YAML mapping.
    """
    config = dict(DEFAULT_CONFIG)
    config["date_formats"] = dict(DEFAULT_DATE_FORMATS)
    if path is None:
        return config

    config_path = Path(path)
    if config_path.is_dir():
        config_path = config_path / CONFIG_FILENAME
        if not config_path.exists():
            return config

    user_config = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(user_config, dict):
        raise ValueError(f"{config_path}: expected a mapping, got {type(user_config).__name__}")
    user_config = _flatten_logging_block(user_config)

    formats = user_config.pop("date_formats", None)
    if isinstance(formats, dict):
        config["date_formats"].update(formats)
    config.update(user_config)
    return config
