"""Configuration module."""

from nftbot.config.loader import load_config, save_default_config
from nftbot.config.schema import Config

__all__ = ["Config", "load_config", "save_default_config"]
