"""Configuration module for blockproducer."""

from blockproducer.config.loader import load_config, save_config, get_config_path
from blockproducer.config.schema import Config
from blockproducer.config.access import get_config, clear_config_cache

__all__ = ["Config", "load_config", "save_config", "get_config_path", "get_config", "clear_config_cache"]
