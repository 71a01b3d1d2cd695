"""Load and write the nftbot JSON config file."""

import json
import os
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from nftbot.config.schema import Config

CONFIG_ENV_VAR = "NFTBOT_CONFIG"
DEFAULT_CONFIG_FILE = Path.home() / ".nftbot" / "config.json"


def resolve_config_path(config_path: Path | None = None) -> Path:
    """Explicit path, then ``$NFTBOT_CONFIG``, then ``~/.nftbot/config.json``."""
    if config_path is not None:
        return config_path
    env_path = os.environ.get(CONFIG_ENV_VAR)
    return Path(env_path).expanduser() if env_path else DEFAULT_CONFIG_FILE


def load_config(config_path: Path | None = None) -> Config:
    """
    Build the root config.

    Keys present in the file override environment variables, which
    override defaults. An unreadable or invalid file is logged and ignored.
    """
    path = resolve_config_path(config_path)
    if not path.exists():
        logger.debug(f"No config file at {path}, using environment and defaults")
        return Config()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        config = Config(**data)
    except (OSError, json.JSONDecodeError, ValidationError, TypeError) as e:
        logger.warning(f"Failed to load config from {path}: {e}, using defaults")
        return Config()

    logger.debug(f"Config loaded from {path}")
    return config


def save_default_config(config_path: Path | None = None) -> Path:
    """Write the default config (secrets left blank) and return its path."""
    path = resolve_config_path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = Config().model_dump(mode="json")
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    logger.info(f"Default config saved to {path}")
    return path
